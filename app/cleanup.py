"""
CLI entrypoint for the cleanup job. Run from cron, e.g.:

  python -m app.cleanup

Or hourly: 0 * * * * cd /path/to/taskhub && .venv/bin/python -m app.cleanup
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.cleanup import run_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired sessions and credentials, and purge long soft-deleted users."""
    settings = get_settings()
    db = SessionLocal()
    try:
        result = run_cleanup(db, settings)
        logger.info(
            "Cleanup completed: sessions_deleted=%s users_purged=%s",
            result.sessions_deleted,
            result.users_purged,
        )
        return 0
    except Exception as e:
        logger.exception("Cleanup job failed: %s", e)
        db.rollback()
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
