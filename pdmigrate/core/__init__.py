# pdmigrate/core/__init__.py
from .exceptions import (
    AmbiguousMatch,
    EntityNotFound,
    Fatal,
    InventoryError,
    LookupFailed,
    PdMigrateError,
    PollTimeout,
    PreCheckFailed,
    RemoteCallError,
    RemoteConnectionError,
)
from .logger import Log

__all__ = [
    "AmbiguousMatch",
    "EntityNotFound",
    "Fatal",
    "InventoryError",
    "Log",
    "LookupFailed",
    "PdMigrateError",
    "PollTimeout",
    "PreCheckFailed",
    "RemoteCallError",
    "RemoteConnectionError",
]
