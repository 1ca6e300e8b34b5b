"""Account lifecycle: login, registration, profile, freeze, password changes and deletion.

Every operation returns an ApiResponse. Role-tier rules (SYSADMIN is untouchable,
USERADMIN is reserved to SYSADMIN creators) are checked before anything is written,
and security-relevant changes revoke the account's refresh tokens in the same
transaction.
"""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from app.core.roles import RoleTier, is_at_least_user_admin, is_top_tier, is_user_admin
from app.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from app.models import Account, RefreshToken, Role
from app.models.base import utcnow
from app.repositories import UnitOfWork
from app.schemas.auth import (
    AccountOut,
    AccountsList,
    LoginResult,
    RegisterRequest,
    RegisterResult,
    UpdateAccountRequest,
)
from app.schemas.common import ApiResponse, ErrorCode
from app.services.boundary import service_boundary
from app.services.tokens import TokenService, authentication_failure

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid username or password"
SYSADMIN = RoleTier.SYSADMIN.value
USERADMIN = RoleTier.USERADMIN.value


def account_out(account: Account, role: Role | None) -> AccountOut:
    return AccountOut(
        id=account.id,
        first_name=account.first_name,
        last_name=account.last_name,
        username=account.username,
        email=account.email,
        role_code=role.ref_code if role is not None else "",
        is_frozen=bool(account.is_frozen),
        last_login_at=account.last_login_at,
    )


class AccountLifecycleManager:
    """State machine over Account (Active <-> Frozen) plus the administrative operations."""

    def __init__(
        self,
        uow: UnitOfWork,
        tokens: TokenService,
        settings: "Settings",
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ) -> None:
        self.uow = uow
        self.tokens = tokens
        self.settings = settings
        self.bcrypt_rounds = bcrypt_rounds

    def _role_of(self, account: Account) -> Role | None:
        return self.uow.roles.get_by_id(account.role_id)

    def _hash(self, plain_password: str) -> str:
        return hash_password(plain_password, rounds=self.bcrypt_rounds)

    @service_boundary("Login failed")
    def login(self, username: str, password: str) -> ApiResponse[LoginResult]:
        """
        Authenticate and issue a token pair.

        The secret is verified before eligibility, so a frozen account with a correct
        password gets ACCOUNT_INELIGIBLE rather than INVALID_CREDENTIAL.
        """
        account = self.uow.accounts.find_first(Account.username == username)
        if account is None or not verify_password(password, account.password_hash):
            return authentication_failure(
                self.settings, INVALID_LOGIN, ErrorCode.INVALID_CREDENTIAL
            )
        if account.is_frozen:
            return authentication_failure(
                self.settings, "User account is frozen", ErrorCode.ACCOUNT_INELIGIBLE
            )

        role = self._role_of(account)
        if role is None:
            return authentication_failure(
                self.settings, "User role not found", ErrorCode.NOT_FOUND
            )

        now = utcnow()
        with self.uow.transaction():
            account.last_login_at = now
            self.uow.accounts.update(account)
            pair = self.tokens.issue_pair(account, role, now)

        logger.info("Login succeeded for account_id=%s", account.id)
        return ApiResponse.ok(
            LoginResult(**pair.model_dump(), account=account_out(account, role)),
            "Login successful",
        )

    @service_boundary("Registration failed")
    def register(self, creator_id: int, request: RegisterRequest) -> ApiResponse[RegisterResult]:
        if is_top_tier(request.role_code):
            return ApiResponse.fail(
                f"Cannot register a user with {SYSADMIN} role", ErrorCode.POLICY_VIOLATION
            )

        creator = self.uow.accounts.get_by_id(creator_id)
        if creator is None:
            return ApiResponse.fail("Creator user not found", ErrorCode.NOT_FOUND)
        creator_role = self._role_of(creator)
        if creator_role is None:
            return ApiResponse.fail("Creator role not found", ErrorCode.NOT_FOUND)

        if is_user_admin(request.role_code) and not is_top_tier(creator_role.ref_code):
            return ApiResponse.fail(
                f"Only {SYSADMIN} users can create {USERADMIN} users",
                ErrorCode.POLICY_VIOLATION,
            )

        if self.uow.accounts.exists(
            (Account.username == request.username) | (Account.email == request.email)
        ):
            return ApiResponse.fail("Username or email already exists", ErrorCode.CONFLICT)

        role = self.uow.roles.find_first(Role.ref_code == request.role_code)
        if role is None:
            return ApiResponse.fail("Invalid role reference code", ErrorCode.NOT_FOUND)

        account = Account(
            first_name=request.first_name,
            last_name=request.last_name,
            username=request.username,
            email=request.email,
            password_hash=self._hash(request.password),
            role_id=role.id,
            is_frozen=False,
            created_by=creator.id,
        )
        try:
            with self.uow.transaction():
                self.uow.accounts.add(account)
        except IntegrityError:
            # Lost a race with a concurrent registration of the same username/email.
            return ApiResponse.fail("Username or email already exists", ErrorCode.CONFLICT)

        logger.info(
            "Account %s registered with role %s by account_id=%s",
            account.username,
            role.ref_code,
            creator.id,
        )
        return ApiResponse.ok(
            RegisterResult(
                account_id=account.id,
                username=account.username,
                email=account.email,
                role_code=role.ref_code,
            ),
            "Registration successful",
        )

    @service_boundary("Failed to retrieve user")
    def current_user(self, account_id: int) -> ApiResponse[AccountOut]:
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        return ApiResponse.ok(account_out(account, role), "User retrieved successfully")

    @service_boundary("Failed to retrieve user")
    def get_account(self, account_id: int) -> ApiResponse[AccountOut]:
        """Administrative lookup; SYSADMIN account details are not exposed."""
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Access to {SYSADMIN} user details is restricted", ErrorCode.POLICY_VIOLATION
            )
        return ApiResponse.ok(account_out(account, role), "User retrieved successfully")

    @service_boundary("An error occurred while retrieving users")
    def list_accounts(self, role_codes: list[str]) -> ApiResponse[AccountsList]:
        roles = self.uow.roles.find(Role.ref_code.in_(role_codes)) if role_codes else []
        if not roles:
            return ApiResponse.fail(
                "No valid user roles found for the provided role codes.", ErrorCode.NOT_FOUND
            )
        roles_by_id = {r.id: r for r in roles}
        accounts = self.uow.accounts.find(Account.role_id.in_(list(roles_by_id)))
        return ApiResponse.ok(
            AccountsList(accounts=[account_out(a, roles_by_id[a.role_id]) for a in accounts]),
            "Users retrieved successfully",
        )

    @service_boundary("An error occurred while updating user")
    def update_profile(
        self, account_id: int, request: UpdateAccountRequest, updated_by: int
    ) -> ApiResponse[AccountOut]:
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        current_role = self._role_of(account)
        if current_role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        current_code = current_role.ref_code
        if is_top_tier(current_code) and account.id != updated_by:
            return ApiResponse.fail(f"Cannot update {SYSADMIN} user", ErrorCode.POLICY_VIOLATION)

        if self.uow.accounts.exists(
            Account.username == request.username, Account.id != account_id
        ):
            return ApiResponse.fail(
                "Username is already in use by another user", ErrorCode.CONFLICT
            )
        if self.uow.accounts.exists(Account.email == request.email, Account.id != account_id):
            return ApiResponse.fail(
                "Email address is already in use by another user", ErrorCode.CONFLICT
            )

        new_role = current_role
        if request.role_code and request.role_code != current_code:
            if is_top_tier(current_code):
                return ApiResponse.fail(
                    f"Cannot change role of {SYSADMIN} user", ErrorCode.POLICY_VIOLATION
                )
            new_role = self.uow.roles.find_first(Role.ref_code == request.role_code)
            if new_role is None:
                return ApiResponse.fail("Invalid role specified", ErrorCode.NOT_FOUND)
            if is_top_tier(new_role.ref_code):
                return ApiResponse.fail(
                    f"Cannot assign {SYSADMIN} role", ErrorCode.POLICY_VIOLATION
                )

        try:
            with self.uow.transaction():
                account.username = request.username
                account.first_name = request.first_name
                account.last_name = request.last_name
                account.email = request.email
                account.updated_by = updated_by
                account.role_id = new_role.id
                self.uow.accounts.update(account)
        except IntegrityError:
            return ApiResponse.fail("Username or email already exists", ErrorCode.CONFLICT)

        return ApiResponse.ok(account_out(account, new_role), "User updated successfully")

    @service_boundary("An error occurred while updating user status")
    def set_frozen(
        self, account_id: int, is_frozen: bool, updated_by: int
    ) -> ApiResponse[AccountOut]:
        """Freeze or unfreeze. Freezing revokes every active refresh token of the account."""
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Cannot freeze/unfreeze {SYSADMIN} users", ErrorCode.POLICY_VIOLATION
            )

        revoked = 0
        with self.uow.transaction():
            account.is_frozen = is_frozen
            account.updated_by = updated_by
            self.uow.accounts.update(account)
            if is_frozen:
                revoked = self.tokens.revoke_all_for_account(
                    account.id, f"User account frozen by {updated_by}"
                )

        logger.info(
            "Account id=%s %s by account_id=%s (refresh tokens revoked: %s)",
            account_id,
            "frozen" if is_frozen else "unfrozen",
            updated_by,
            revoked,
        )
        message = "User frozen successfully" if is_frozen else "User unfrozen successfully"
        return ApiResponse.ok(account_out(account, role), message)

    def freeze(self, account_id: int, updated_by: int) -> ApiResponse[AccountOut]:
        return self.set_frozen(account_id, True, updated_by)

    def unfreeze(self, account_id: int, updated_by: int) -> ApiResponse[AccountOut]:
        return self.set_frozen(account_id, False, updated_by)

    @service_boundary("Password change failed")
    def change_password(
        self, account_id: int, current_password: str, new_password: str
    ) -> ApiResponse[str]:
        """Self-service change: verifies the current secret and stamps password_changed_at."""
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        if account.is_frozen:
            return ApiResponse.fail(
                "Account is frozen. Password cannot be changed", ErrorCode.ACCOUNT_INELIGIBLE
            )
        if not verify_password(current_password, account.password_hash):
            return ApiResponse.fail(
                "Current password is incorrect", ErrorCode.INVALID_CREDENTIAL
            )

        now = utcnow()
        with self.uow.transaction():
            account.password_hash = self._hash(new_password)
            account.password_changed_at = now
            account.updated_by = account.id
            self.uow.accounts.update(account)
            self.tokens.revoke_all_for_account(
                account.id, "Password changed - security measure", now
            )

        return ApiResponse.ok(
            "Password changed successfully",
            "Your password has been updated. Please log in again.",
        )

    @service_boundary("Admin password change failed")
    def admin_change_password(
        self, account_id: int, new_password: str, changed_by: int
    ) -> ApiResponse[str]:
        """
        Reset another account's password without the current secret.

        password_changed_at is cleared rather than stamped, marking the secret as
        admin-assigned.
        """
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Cannot change password for {SYSADMIN} users", ErrorCode.POLICY_VIOLATION
            )

        admin = self.uow.accounts.get_by_id(changed_by)
        if admin is None:
            return ApiResponse.fail("Admin user not found", ErrorCode.NOT_FOUND)
        admin_role = self._role_of(admin)
        if admin_role is None:
            return ApiResponse.fail("Admin role not found", ErrorCode.NOT_FOUND)
        if not is_at_least_user_admin(admin_role.ref_code):
            return ApiResponse.fail(
                "Insufficient privileges to change user passwords", ErrorCode.POLICY_VIOLATION
            )

        with self.uow.transaction():
            account.password_hash = self._hash(new_password)
            account.password_changed_at = None
            account.updated_by = admin.id
            self.uow.accounts.update(account)
            self.tokens.revoke_all_for_account(
                account.id, f"Password changed by admin: {changed_by}"
            )

        logger.info("Password for account_id=%s reset by account_id=%s", account_id, changed_by)
        return ApiResponse.ok(
            "Password changed successfully",
            f"Password for user {account.username} has been updated by admin.",
        )

    def _delete(self, account: Account) -> None:
        with self.uow.transaction():
            tokens = self.uow.refresh_tokens.find(RefreshToken.account_id == account.id)
            self.uow.refresh_tokens.delete_many(tokens)
            self.uow.flush()
            self.uow.accounts.delete(account)
        logger.info("Deleted account id=%s (%s)", account.id, account.username)

    @service_boundary("User deletion failed")
    def delete_account(self, account_id: int) -> ApiResponse[str]:
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Cannot delete a user with {SYSADMIN} role", ErrorCode.POLICY_VIOLATION
            )
        self._delete(account)
        return ApiResponse.ok("User deleted successfully", "User has been deleted")

    @service_boundary("User deletion failed")
    def delete_user_admin(self, account_id: int) -> ApiResponse[str]:
        """Admin-scoped delete: only USERADMIN accounts can be removed through this path."""
        account = self.uow.accounts.get_by_id(account_id)
        if account is None:
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)
        role = self._role_of(account)
        if role is None:
            return ApiResponse.fail("User role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Cannot delete a user with {SYSADMIN} role", ErrorCode.POLICY_VIOLATION
            )
        if not is_user_admin(role.ref_code):
            return ApiResponse.fail(
                f"Can only delete {USERADMIN} users via this method", ErrorCode.POLICY_VIOLATION
            )
        self._delete(account)
        return ApiResponse.ok("User deleted successfully", "User has been deleted")
