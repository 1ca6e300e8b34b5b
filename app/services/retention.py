"""Data retention: delete refresh tokens that expired more than RETENTION_HOURS ago."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.models import RefreshToken
from app.models.base import utcnow

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(
    session: Session, settings: "Settings", now: datetime | None = None
) -> int:
    """
    Delete refresh tokens whose expiry is older than the retention cutoff. Such rows
    are expired (and possibly revoked too), so no usable token is ever removed.

    Returns the number of deleted rows. Idempotent: safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return 0

    cutoff = (now or utcnow()) - timedelta(hours=settings.RETENTION_HOURS)
    deleted_count = (
        session.query(RefreshToken)
        .filter(RefreshToken.expires_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Retention run: cutoff=%s, refresh_tokens_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
