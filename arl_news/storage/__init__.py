"""Database storage and models."""

from .database import NewsStorage
from .models import NewsSourceModel, ExternalNewsModel, init_db
from .factory import get_storage

__all__ = ["NewsStorage", "NewsSourceModel", "ExternalNewsModel", "init_db", "get_storage"]
