"""
Shared module for cross-cutting concerns of the REST API.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Query parameter names, sort direction, limits

- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy engine and sessions, transaction(), driver error classification
  - correlation.py: X-Request-ID middleware and log filter

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging, ModelOperationError

- shared.security: Security
  - password.py: Bcrypt hashing

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, transaction
    from shared.config.settings import settings
    from shared.config.constants import QueryParams
    from shared.utils.exceptions import ModelOperationError, OperationKind
    from shared.security.password import hash_password
"""
