"""Apply pending SQL migrations to the database named by DATABASE_URL.

Usage::

    python -m courseware.run_migrations
"""

from __future__ import annotations

import logging
import os
import sys

from courseware.db import Database
from courseware.logging_config import configure_logging


LOGGER = logging.getLogger("courseware.migrations")


def main() -> int:
    configure_logging()
    dsn = os.getenv("DATABASE_URL", "").strip()
    if not dsn:
        LOGGER.error("migrations.failed", extra={"error": "DATABASE_URL must be set."})
        return 1

    applied = Database(dsn=dsn).migrate()
    for migration_id in applied:
        LOGGER.info("migrations.applied", extra={"migration_id": migration_id})
    LOGGER.info("migrations.complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
