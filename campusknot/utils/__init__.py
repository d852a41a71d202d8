"""Utils package for CampusKnot."""

from campusknot.utils.cache import RedisClient, evict, load_model, store_model
from campusknot.utils.database import Database, get_session, init_database, session_scope
from campusknot.utils.errors import (
    AuthenticationError,
    CampusKnotError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from campusknot.utils.logging import configure_logging, get_logger, log_error

__all__ = [
    "AuthenticationError",
    "CampusKnotError",
    "ConflictError",
    "Database",
    "DatabaseError",
    "ExternalServiceError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "RedisClient",
    "ValidationError",
    "configure_logging",
    "evict",
    "get_logger",
    "get_session",
    "init_database",
    "load_model",
    "log_error",
    "session_scope",
    "store_model",
]
