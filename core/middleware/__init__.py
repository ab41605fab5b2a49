"""
Core middleware package.

- Error handling with typed error codes and message sanitization
- Structured request logging with sensitive-data masking
- Role-based authorization for the service layer
"""

from core.middleware.error_handling import (
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authorization import (
    Identity,
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    require_permission,
    require_self_or_permission,
    require_participant,
)

__all__ = [
    # Error handling
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authorization
    "Identity",
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "require_permission",
    "require_self_or_permission",
    "require_participant",
]
