"""Unit of work: one session, one repository per entity, explicit transaction control."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.models import Account, Capability, Module, RefreshToken, Role, RoleCapability
from app.repositories.base import Repository


class UnitOfWork:
    """
    Groups repositories sharing a session so multi-entity changes commit atomically.

    Usage:
        with uow.transaction():
            uow.role_capabilities.delete_many(old)
            uow.role_capabilities.add_many(new)
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.accounts: Repository[Account] = Repository(session, Account)
        self.roles: Repository[Role] = Repository(session, Role)
        self.modules: Repository[Module] = Repository(session, Module)
        self.capabilities: Repository[Capability] = Repository(session, Capability)
        self.role_capabilities: Repository[RoleCapability] = Repository(
            session, RoleCapability
        )
        self.refresh_tokens: Repository[RefreshToken] = Repository(session, RefreshToken)

    def begin(self) -> None:
        """Start a transaction unless one is already open (sessions autobegin on first query)."""
        if not self.session.in_transaction():
            self.session.begin()

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def transaction(self) -> Iterator["UnitOfWork"]:
        """Commit everything done inside the block, or roll all of it back on any exception."""
        self.begin()
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise
