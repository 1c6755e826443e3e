"""
Shared module for cross-cutting concerns used by every bounded context.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging, per-context loggers, auth audit trail
  - constants.py: Statuses, transition tables, roles and permissions

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: Correlation ids for log records
  - events/: Domain events over Redis Streams

- shared.security: Authentication
  - auth.py: JWT access/refresh tokens
  - password.py: Bcrypt hashing and the password policy

- shared.utils: Utilities
  - exceptions.py: Error kinds and codes with auto-logging
  - clock.py: Injectable clock
  - ids.py: Prefixed identifiers
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, Roles
    from shared.infrastructure.events import DomainEvent, InMemoryEventBus
    from shared.security.auth import JWTService
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
