"""Core module - config, database, dependencies, exceptions."""

from sprouty.core.config import get_settings, Settings
from sprouty.core.database import Database, get_db
from sprouty.core.dependencies import get_current_user
from sprouty.core.exceptions import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    BadRequestException,
)

__all__ = [
    "get_settings",
    "Settings",
    "Database",
    "get_db",
    "get_current_user",
    "AppException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "BadRequestException",
]
