"""
Seed the permission catalog and create the first SYSADMIN account. Run from project root:
  python -m app.scripts.bootstrap USERNAME EMAIL PASSWORD
Registration can never create a SYSADMIN, so this is the only way to obtain one.
Safe to re-run: existing roles, modules, capabilities and grants are left as they are.
"""
import argparse
import sys

from sqlalchemy.orm import Session

from app.core import roles as codes
from app.core.database import SessionLocal
from app.core.roles import RoleTier
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
)
from app.models import Account, Capability, Module, Role, RoleCapability

# (ref_code, name, sort_order)
MODULES = [
    ("ADMINISTRATION", "Administration", 1),
    ("FEATURES", "Features", 2),
    ("EMPLOYEES", "Employees", 3),
    ("MANAGERS", "Managers", 4),
]

# (module ref_code, capability ref_code, name, parent capability ref_code)
CAPABILITIES = [
    ("ADMINISTRATION", codes.MODULE_READ, "View modules", None),
    ("ADMINISTRATION", codes.ADMIN_READ, "View users", None),
    ("ADMINISTRATION", codes.ADMIN_CREATE, "Create users", codes.ADMIN_READ),
    ("ADMINISTRATION", codes.ADMIN_UPDATE, "Update users", codes.ADMIN_READ),
    ("ADMINISTRATION", codes.ADMIN_DELETE, "Delete users", codes.ADMIN_READ),
    ("ADMINISTRATION", codes.ADMIN_CHANGE_PASSWORD, "Reset user passwords", codes.ADMIN_READ),
    ("FEATURES", codes.FEATURES_READ_ROLES, "View roles", None),
    ("FEATURES", codes.FEATURES_READ_PERMISSIONS, "View permissions", codes.FEATURES_READ_ROLES),
    (
        "FEATURES",
        codes.FEATURES_UPDATE_ROLE_PERMISSIONS,
        "Edit roles and permissions",
        codes.FEATURES_READ_ROLES,
    ),
    ("EMPLOYEES", codes.EMPLOYEE_READ, "View employees", None),
    ("EMPLOYEES", codes.EMPLOYEE_CREATE, "Create employees", codes.EMPLOYEE_READ),
    ("EMPLOYEES", codes.EMPLOYEE_UPDATE, "Update employees", codes.EMPLOYEE_READ),
    ("EMPLOYEES", codes.EMPLOYEE_DELETE, "Delete employees", codes.EMPLOYEE_READ),
    ("MANAGERS", codes.MANAGER_READ, "View managers", None),
    ("MANAGERS", codes.MANAGER_CREATE, "Create managers", codes.MANAGER_READ),
    ("MANAGERS", codes.MANAGER_UPDATE, "Update managers", codes.MANAGER_READ),
    ("MANAGERS", codes.MANAGER_DELETE, "Delete managers", codes.MANAGER_READ),
]

USERADMIN_GRANTS = [
    codes.MODULE_READ,
    codes.ADMIN_READ,
    codes.ADMIN_CREATE,
    codes.ADMIN_UPDATE,
    codes.ADMIN_DELETE,
    codes.ADMIN_CHANGE_PASSWORD,
    codes.FEATURES_READ_ROLES,
    codes.FEATURES_READ_PERMISSIONS,
    codes.EMPLOYEE_READ,
    codes.EMPLOYEE_CREATE,
    codes.EMPLOYEE_UPDATE,
    codes.EMPLOYEE_DELETE,
    codes.MANAGER_READ,
]


def _get_or_create_role(session: Session, ref_code: str, name: str) -> Role:
    role = session.query(Role).filter(Role.ref_code == ref_code).first()
    if role is None:
        role = Role(name=name, ref_code=ref_code, is_visible=True)
        session.add(role)
        session.flush()
    return role


def _grant(session: Session, role: Role, capabilities: list[Capability]) -> None:
    existing = {
        g.capability_id
        for g in session.query(RoleCapability).filter(RoleCapability.role_id == role.id)
    }
    session.add_all(
        RoleCapability(role_id=role.id, capability_id=c.id)
        for c in capabilities
        if c.id not in existing
    )


def seed_catalog(session: Session) -> dict[str, Role]:
    """Insert the well-known roles, modules, capabilities and default grants. Commits."""
    modules: dict[str, Module] = {
        m.ref_code: m for m in session.query(Module).all()
    }
    for ref_code, name, sort_order in MODULES:
        if ref_code not in modules:
            module = Module(name=name, ref_code=ref_code, sort_order=sort_order, is_visible=True)
            session.add(module)
            modules[ref_code] = module
    session.flush()

    capabilities: dict[str, Capability] = {
        c.ref_code: c for c in session.query(Capability).all()
    }
    for module_code, ref_code, name, parent_code in CAPABILITIES:
        if ref_code in capabilities:
            continue
        parent = capabilities.get(parent_code) if parent_code else None
        capability = Capability(
            module_id=modules[module_code].id,
            name=name,
            ref_code=ref_code,
            parent_id=parent.id if parent is not None else None,
            is_visible=True,
        )
        session.add(capability)
        session.flush()
        capabilities[ref_code] = capability

    sysadmin = _get_or_create_role(session, RoleTier.SYSADMIN.value, "System Administrator")
    useradmin = _get_or_create_role(session, RoleTier.USERADMIN.value, "User Administrator")
    _grant(session, sysadmin, list(capabilities.values()))
    _grant(session, useradmin, [capabilities[c] for c in USERADMIN_GRANTS])
    session.commit()
    return {sysadmin.ref_code: sysadmin, useradmin.ref_code: useradmin}


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Seed roles and permissions, then create the first SYSADMIN account."
    )
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("--first-name", default="System")
    parser.add_argument("--last-name", default="Administrator")
    args = parser.parse_args()

    username = args.username.strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        seeded = seed_catalog(db)
        existing = (
            db.query(Account)
            .filter((Account.username == username) | (Account.email == args.email))
            .first()
        )
        if existing:
            print(f"User '{username}' or email '{args.email}' already exists.", file=sys.stderr)
            return 1
        account = Account(
            first_name=args.first_name,
            last_name=args.last_name,
            username=username,
            email=args.email.strip(),
            password_hash=hash_password(args.password),
            role_id=seeded[RoleTier.SYSADMIN.value].id,
            is_frozen=False,
        )
        db.add(account)
        db.commit()
        print(f"Created {RoleTier.SYSADMIN.value} account '{username}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
