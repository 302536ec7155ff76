#!/usr/bin/env python3
"""Run the gold news web app."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn
from dotenv import load_dotenv

from arl_news.web.app import app


if __name__ == "__main__":
    load_dotenv()

    port = int(os.environ.get("PORT", 8000))

    print("\n" + "=" * 60)
    print("ARL CONNECT - GOLD NEWS")
    print("=" * 60)
    print("Starting web server...")
    print(f"Open http://localhost:{port}/gold-news in your browser")
    print("Press Ctrl+C to stop")
    print("=" * 60 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=port)
