"""Shared fixtures: in-memory account store seeded with the well-known catalog."""

import unittest

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.security import hash_password
from app.models import Account, Base, Role
from app.repositories import UnitOfWork
from app.scripts.bootstrap import seed_catalog
from app.services.accounts import AccountLifecycleManager
from app.services.authorization import AuthorizationEvaluator
from app.services.tokens import TokenService

TEST_SECRET = "unit-test-signing-key-0123456789abcdef"
PASSWORD = "correct-horse-battery"
FAST_ROUNDS = 4


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET": TEST_SECRET,
        "DATABASE_URL": "sqlite://",
        "REFRESH_TOKEN_COOKIE_SECURE": False,
    }
    values.update(overrides)
    return Settings(**values)


def make_engine(url: str = "sqlite://") -> Engine:
    if url == "sqlite://":
        engine = create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def add_account(
    session: Session,
    username: str,
    role: Role,
    password: str = PASSWORD,
    is_frozen: bool = False,
) -> Account:
    account = Account(
        first_name=username.capitalize(),
        last_name="Tester",
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password, rounds=FAST_ROUNDS),
        role_id=role.id,
        is_frozen=is_frozen,
    )
    session.add(account)
    session.commit()
    return account


class ServiceTestCase(unittest.TestCase):
    """Seeded in-memory store with services wired to one unit of work."""

    def setUp(self) -> None:
        self.engine = make_engine()
        self.session = make_session_factory(self.engine)()
        self.settings = make_settings()
        seeded = seed_catalog(self.session)
        self.sysadmin_role = seeded["SYSADMIN"]
        self.useradmin_role = seeded["USERADMIN"]
        self.employee_role = Role(name="Employee", ref_code="EMPLOYEE", is_visible=True)
        self.session.add(self.employee_role)
        self.session.commit()

        self.uow = UnitOfWork(self.session)
        self.tokens = TokenService(self.uow, self.settings)
        self.evaluator = AuthorizationEvaluator(self.uow)
        self.accounts = AccountLifecycleManager(
            self.uow, self.tokens, self.settings, bcrypt_rounds=FAST_ROUNDS
        )
        self.root = add_account(self.session, "root", self.sysadmin_role)
        self.admin = add_account(self.session, "admin", self.useradmin_role)
        self.employee = add_account(self.session, "employee", self.employee_role)

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()

    def login(self, username: str, password: str = PASSWORD):
        result = self.accounts.login(username, password)
        self.assertTrue(result.success, result.message)
        return result.data
