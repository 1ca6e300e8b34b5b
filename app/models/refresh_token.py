"""ORM model for persisted refresh tokens (rotation chain and revocation audit)."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.models.base import AuditMixin, Base, as_utc, utcnow


class RefreshToken(AuditMixin, Base):
    """
    Opaque long-lived credential exchanged for a new token pair exactly once.

    Revocation is terminal. replaced_by holds the successor token string after rotation.
    version is an optimistic-concurrency counter: two sessions updating the same row
    cannot both succeed, which keeps redemption single-use under concurrent refreshes.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(200), nullable=False, unique=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_reason = Column(String(200), nullable=True)
    replaced_by = Column(String(200), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def is_expired_at(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)

    @property
    def is_expired(self) -> bool:
        return self.is_expired_at()

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and not self.is_expired

    def revoke(self, reason: str, when: datetime | None = None) -> None:
        """Mark revoked. Callers check is_active first; revocation data is never overwritten."""
        self.is_revoked = True
        self.revoked_at = when or utcnow()
        self.revoked_reason = reason

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, account_id={self.account_id}, revoked={self.is_revoked})>"
