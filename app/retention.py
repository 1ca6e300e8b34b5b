"""
Refresh-token housekeeping job, meant for cron:

  python -m app.retention            # purge tokens expired more than RETENTION_HOURS ago
  python -m app.retention --hours 48 # one-off override of the retention window
"""

import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger("app.retention")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete long-dead refresh tokens.")
    parser.add_argument(
        "--hours",
        type=int,
        default=None,
        help="Retention window in hours (defaults to RETENTION_HOURS)",
    )
    args = parser.parse_args(argv)
    if args.hours is not None and args.hours < 1:
        parser.error("--hours must be at least 1")

    settings = get_settings()
    if args.hours is not None:
        settings = settings.model_copy(update={"RETENTION_HOURS": args.hours})

    session = SessionLocal()
    try:
        deleted = run_retention(session, settings)
    except Exception:
        logger.exception("Refresh-token retention failed")
        session.rollback()
        return 1
    finally:
        session.close()
    logger.info("Refresh-token retention finished: deleted=%s", deleted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
