from src.core.config import settings
from src.core.database import get_db

__all__ = ["settings", "get_db"]
