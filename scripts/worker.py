"""Production worker for scheduled gold news tasks.

This worker runs as a separate service and handles:
- Fetching due news sources (every ARL_FETCH_INTERVAL_MINUTES)
- Retention cleanup of old articles (daily)
- Health monitoring (hourly)

Usage:
    python scripts/worker.py

Environment Variables:
    DATABASE_URL: database connection string
    ARL_RETENTION_DAYS: days of news to keep (default 30)
    SLACK_WEBHOOK_URL: Optional, for alerts
"""

import os
import sys
import asyncio
from datetime import datetime
import signal

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
import structlog

from arl_news.config.settings import settings

logger = structlog.get_logger()


class NewsWorker:
    """Manages scheduled news tasks."""

    def __init__(self):
        from arl_news.storage.factory import get_storage

        self.storage = get_storage()
        self.scheduler = AsyncIOScheduler()
        self.running = True

    def setup_jobs(self):
        """Configure scheduled jobs."""
        self.scheduler.add_job(
            self.fetch_news,
            IntervalTrigger(minutes=settings.fetch_interval_minutes),
            id='fetch_news',
            name='Fetch gold news sources',
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=600
        )

        # Retention cleanup daily at 1am
        self.scheduler.add_job(
            self.cleanup_news,
            CronTrigger(hour=1),
            id='cleanup_news',
            name='Delete old gold news',
            replace_existing=True,
            misfire_grace_time=3600
        )

        self.scheduler.add_job(
            self.health_check,
            IntervalTrigger(hours=1),
            id='health_check',
            name='News health check',
            replace_existing=True
        )

        logger.info("jobs_configured", count=len(self.scheduler.get_jobs()))

    async def fetch_news(self):
        """Fetch every active source whose interval has elapsed."""
        logger.info("job_started", job="fetch_news")
        start_time = datetime.now()

        try:
            from arl_news.pipeline.aggregator import run_news_fetch

            summary = await run_news_fetch(self.storage, only_due=True)

            elapsed = (datetime.now() - start_time).total_seconds()
            logger.info("job_completed", job="fetch_news",
                       new=summary.total, errors=len(summary.errors), elapsed_seconds=elapsed)

            if summary.errors:
                await self.send_alert(
                    "Some news sources failed:\n" + "\n".join(summary.errors),
                    level="warning"
                )

            return summary.to_dict()

        except Exception as e:
            logger.error("job_failed", job="fetch_news", error=str(e))
            await self.send_alert(f"Fetch news failed: {e}", level="error")
            return {"error": str(e)}

    async def cleanup_news(self):
        """Delete news older than the retention window."""
        logger.info("job_started", job="cleanup_news")

        try:
            deleted = self.storage.cleanup_old_news(settings.retention_days)
            logger.info("job_completed", job="cleanup_news", deleted=deleted)
            return {"deleted": deleted}

        except Exception as e:
            logger.error("job_failed", job="cleanup_news", error=str(e))
            await self.send_alert(f"News cleanup failed: {e}", level="error")
            return {"error": str(e)}

    async def health_check(self):
        """Check system health and alert if issues."""
        try:
            stats = self.storage.get_stats()
            failing = [s.name for s in self.storage.get_active_sources() if s.last_error]

            if stats.get('activeSources', 0) and len(failing) == stats['activeSources']:
                await self.send_alert("All active news sources are failing", level="error")

            logger.debug("health_check", stats=stats, failing_sources=failing)

            return {"status": "healthy", "stats": stats, "failing_sources": failing}

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            await self.send_alert(f"Health check failed: {e}", level="error")
            return {"status": "unhealthy", "error": str(e)}

    async def send_alert(self, message: str, level: str = "warning"):
        """Send alert via Slack webhook (if configured)."""
        webhook_url = os.environ.get('SLACK_WEBHOOK_URL')
        if not webhook_url:
            return

        try:
            import httpx

            prefix = {
                "info": "[info]",
                "warning": "[warning]",
                "error": "[error]"
            }.get(level, "[alert]")

            async with httpx.AsyncClient() as client:
                await client.post(webhook_url, json={
                    "text": f"{prefix} *ARL Gold News*\n{message}"
                })
        except Exception as e:
            logger.error("alert_failed", error=str(e))

    def start(self):
        """Start the worker."""
        self.setup_jobs()
        self.scheduler.start()
        logger.info("worker_started", jobs=len(self.scheduler.get_jobs()))

    def stop(self):
        """Stop the worker gracefully."""
        self.running = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("worker_stopped")


async def main():
    """Main entry point."""
    worker = NewsWorker()

    # Handle graceful shutdown
    def signal_handler(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        worker.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    worker.start()

    # Run immediately on startup
    logger.info("running_initial_tasks")
    await worker.fetch_news()
    await worker.health_check()

    # Keep running
    try:
        while worker.running:
            await asyncio.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        pass

    worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
