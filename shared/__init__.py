"""
Shared module for cross-cutting concerns of the data access layer.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Paging limits, audit field names

- shared.infrastructure: Database and log correlation
  - db.py: SQLAlchemy engines and session factories, safe_commit()
  - correlation.py: Correlation IDs for log records

- shared.utils: Utilities
  - exceptions.py: Data access exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db_context, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Limits
    from shared.utils.exceptions import InvalidArgument, EmptyAggregate
"""
