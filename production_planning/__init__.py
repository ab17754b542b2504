from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    PlanningError, InfrastructureError, ValidationError, NotFoundError,
    NoComponentsError, InsufficientInventoryError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'PlanningError',
    'InfrastructureError',
    'ValidationError',
    'NotFoundError',
    'NoComponentsError',
    'InsufficientInventoryError'
]
