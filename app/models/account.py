"""ORM models for accounts and roles."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.models.base import AuditMixin, Base


class Role(AuditMixin, Base):
    """
    Named tier owning a set of capability grants.

    ref_code is unique and never edited after creation; the SYSADMIN code is the top tier.
    """

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    ref_code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, ref_code={self.ref_code!r})>"


class Account(AuditMixin, Base):
    """
    User account for JWT authentication and role-based access control.

    States: active (is_frozen False) and frozen. Frozen accounts cannot log in or refresh.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    is_frozen = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.username!r})>"
