"""Per-tenant SQLite databases."""

from .manager import DatabaseManager
from .schemas import SCHEMAS

__all__ = ['DatabaseManager', 'SCHEMAS']
