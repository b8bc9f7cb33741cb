"""Core framework components - database, models, repositories, managers."""

from .database import Database
from .logging import configure_logging, get_logger
from .manager import BaseManager, Manager
from .models import Base, Entity
from .repository import BaseRepository, Repository
from .schemas import EntityIn, EntityOut
from .types import ULIDType, UTCDateTime

__all__ = [
    "Database",
    "Repository",
    "BaseRepository",
    "Manager",
    "BaseManager",
    "Base",
    "Entity",
    "ULIDType",
    "UTCDateTime",
    "EntityIn",
    "EntityOut",
    "configure_logging",
    "get_logger",
]
