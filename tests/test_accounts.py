"""Tests for the account lifecycle: login, registration, profile, freeze, passwords and deletion."""

import unittest
from datetime import timedelta

from pydantic import ValidationError

from app.core.security import verify_password
from app.models import Account, RefreshToken
from app.schemas.auth import RegisterRequest, UpdateAccountRequest
from app.schemas.common import ErrorCode
from support import PASSWORD, ServiceTestCase, add_account


def _register_request(username: str, role_code: str, **overrides) -> RegisterRequest:
    values = {
        "first_name": "New",
        "last_name": "Person",
        "username": username,
        "email": f"{username}@example.com",
        "password": "a-strong-password",
        "role_code": role_code,
    }
    values.update(overrides)
    return RegisterRequest(**values)


class TestLogin(ServiceTestCase):
    def test_login_issues_pair_with_configured_lifetimes(self) -> None:
        add_account(self.session, "user", self.employee_role, password="Correct1!")
        result = self.accounts.login("user", "Correct1!")
        self.assertTrue(result.success, result.message)
        data = result.data
        self.assertEqual(data.account.username, "user")
        self.assertEqual(data.account.role_code, "EMPLOYEE")
        self.assertEqual(
            data.refresh_token_expires_at - data.access_token_expires_at,
            timedelta(days=7) - timedelta(minutes=15),
        )

    def test_login_records_last_login(self) -> None:
        self.login("employee")
        account = self.uow.accounts.get_by_id(self.employee.id)
        self.assertIsNotNone(account.last_login_at)

    def test_wrong_password(self) -> None:
        add_account(self.session, "user", self.employee_role, password="Correct1!")
        result = self.accounts.login("user", "Wrong")
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorCode.INVALID_CREDENTIAL)

    def test_unknown_user_gets_same_failure_as_wrong_password(self) -> None:
        unknown = self.accounts.login("nobody", PASSWORD)
        wrong = self.accounts.login("employee", "not-the-password")
        self.assertEqual(unknown.error, ErrorCode.INVALID_CREDENTIAL)
        self.assertEqual(unknown.message, wrong.message)

    def test_frozen_account_with_correct_password(self) -> None:
        add_account(self.session, "iced", self.employee_role, is_frozen=True)
        result = self.accounts.login("iced", PASSWORD)
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorCode.ACCOUNT_INELIGIBLE)

    def test_frozen_account_with_wrong_password(self) -> None:
        add_account(self.session, "iced", self.employee_role, is_frozen=True)
        result = self.accounts.login("iced", "not-the-password")
        self.assertEqual(result.error, ErrorCode.INVALID_CREDENTIAL)


class TestRegister(ServiceTestCase):
    def test_useradmin_registers_employee(self) -> None:
        result = self.accounts.register(self.admin.id, _register_request("newbie", "EMPLOYEE"))
        self.assertTrue(result.success, result.message)
        stored = self.uow.accounts.find_first(Account.username == "newbie")
        self.assertEqual(stored.created_by, self.admin.id)
        self.assertFalse(stored.is_frozen)
        self.assertTrue(verify_password("a-strong-password", stored.password_hash))

    def test_sysadmin_role_is_never_registrable(self) -> None:
        for creator in (self.root.id, self.admin.id, 999):
            result = self.accounts.register(creator, _register_request("boss", "SYSADMIN"))
            self.assertFalse(result.success)
            self.assertEqual(result.error, ErrorCode.POLICY_VIOLATION)
        lowercase = self.accounts.register(self.root.id, _register_request("boss", "sysadmin"))
        self.assertEqual(lowercase.error, ErrorCode.POLICY_VIOLATION)
        self.assertIsNone(self.uow.accounts.find_first(Account.username == "boss"))

    def test_only_sysadmin_creates_useradmin(self) -> None:
        denied = self.accounts.register(self.admin.id, _register_request("ua2", "USERADMIN"))
        self.assertEqual(denied.error, ErrorCode.POLICY_VIOLATION)
        allowed = self.accounts.register(self.root.id, _register_request("ua2", "USERADMIN"))
        self.assertTrue(allowed.success, allowed.message)

    def test_duplicate_username_or_email(self) -> None:
        dup_name = self.accounts.register(self.admin.id, _register_request("employee", "EMPLOYEE"))
        self.assertEqual(dup_name.error, ErrorCode.CONFLICT)
        dup_email = self.accounts.register(
            self.admin.id,
            _register_request("fresh", "EMPLOYEE", email="employee@example.com"),
        )
        self.assertEqual(dup_email.error, ErrorCode.CONFLICT)

    def test_unknown_role_or_creator(self) -> None:
        unknown_role = self.accounts.register(self.admin.id, _register_request("x1", "NOPE"))
        self.assertEqual(unknown_role.error, ErrorCode.NOT_FOUND)
        unknown_creator = self.accounts.register(999, _register_request("x2", "EMPLOYEE"))
        self.assertEqual(unknown_creator.error, ErrorCode.NOT_FOUND)


class TestProfile(ServiceTestCase):
    def _update(self, username: str, email: str, role_code: str | None = None) -> UpdateAccountRequest:
        return UpdateAccountRequest(
            first_name="Renamed",
            last_name="Person",
            username=username,
            email=email,
            role_code=role_code,
        )

    def test_update_profile_and_role(self) -> None:
        result = self.accounts.update_profile(
            self.employee.id,
            self._update("employee2", "e2@example.com", "USERADMIN"),
            self.admin.id,
        )
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.data.role_code, "USERADMIN")
        self.assertEqual(result.data.username, "employee2")

    def test_username_taken_by_other_account(self) -> None:
        result = self.accounts.update_profile(
            self.employee.id, self._update("admin", "e2@example.com"), self.admin.id
        )
        self.assertEqual(result.error, ErrorCode.CONFLICT)

    def test_keeping_own_username_is_allowed(self) -> None:
        result = self.accounts.update_profile(
            self.employee.id, self._update("employee", "employee@example.com"), self.admin.id
        )
        self.assertTrue(result.success, result.message)

    def test_sysadmin_role_cannot_be_assigned(self) -> None:
        result = self.accounts.update_profile(
            self.employee.id, self._update("employee", "employee@example.com", "SYSADMIN"),
            self.admin.id,
        )
        self.assertEqual(result.error, ErrorCode.POLICY_VIOLATION)

    def test_sysadmin_profile_is_only_self_editable(self) -> None:
        other = self.accounts.update_profile(
            self.root.id, self._update("root", "root@example.com"), self.admin.id
        )
        self.assertEqual(other.error, ErrorCode.POLICY_VIOLATION)
        own = self.accounts.update_profile(
            self.root.id, self._update("root", "root@example.com"), self.root.id
        )
        self.assertTrue(own.success, own.message)
        demote = self.accounts.update_profile(
            self.root.id, self._update("root", "root@example.com", "USERADMIN"), self.root.id
        )
        self.assertEqual(demote.error, ErrorCode.POLICY_VIOLATION)

    def test_get_account_hides_sysadmin(self) -> None:
        self.assertEqual(
            self.accounts.get_account(self.root.id).error, ErrorCode.POLICY_VIOLATION
        )
        self.assertTrue(self.accounts.get_account(self.admin.id).success)
        self.assertEqual(self.accounts.get_account(999).error, ErrorCode.NOT_FOUND)

    def test_list_accounts_by_role(self) -> None:
        result = self.accounts.list_accounts(["EMPLOYEE", "USERADMIN"])
        names = sorted(a.username for a in result.data.accounts)
        self.assertEqual(names, ["admin", "employee"])
        self.assertEqual(self.accounts.list_accounts([]).error, ErrorCode.NOT_FOUND)
        self.assertEqual(self.accounts.list_accounts(["NOPE"]).error, ErrorCode.NOT_FOUND)


class TestFreeze(ServiceTestCase):
    def _active_tokens(self, account_id: int) -> int:
        return sum(
            1
            for t in self.uow.refresh_tokens.find(RefreshToken.account_id == account_id)
            if t.is_active
        )

    def test_freeze_revokes_every_active_token(self) -> None:
        for _ in range(3):
            self.login("employee")
        self.assertEqual(self._active_tokens(self.employee.id), 3)

        result = self.accounts.freeze(self.employee.id, self.admin.id)
        self.assertTrue(result.success, result.message)
        self.assertEqual(self._active_tokens(self.employee.id), 0)
        reasons = {
            t.revoked_reason
            for t in self.uow.refresh_tokens.find(RefreshToken.account_id == self.employee.id)
        }
        self.assertEqual(reasons, {f"User account frozen by {self.admin.id}"})

        login = self.accounts.login("employee", PASSWORD)
        self.assertEqual(login.error, ErrorCode.ACCOUNT_INELIGIBLE)

    def test_unfreeze_restores_login(self) -> None:
        self.accounts.freeze(self.employee.id, self.admin.id)
        self.assertTrue(self.accounts.unfreeze(self.employee.id, self.admin.id).success)
        self.assertTrue(self.accounts.login("employee", PASSWORD).success)

    def test_sysadmin_cannot_be_frozen(self) -> None:
        result = self.accounts.freeze(self.root.id, self.root.id)
        self.assertEqual(result.error, ErrorCode.POLICY_VIOLATION)
        self.assertFalse(self.uow.accounts.get_by_id(self.root.id).is_frozen)


class TestPasswords(ServiceTestCase):
    def test_change_password_revokes_sessions(self) -> None:
        pair = self.login("employee")
        result = self.accounts.change_password(self.employee.id, PASSWORD, "brand-new-secret")
        self.assertTrue(result.success, result.message)
        self.assertFalse(self.tokens.refresh(pair.refresh_token).success)
        self.assertIsNotNone(self.uow.accounts.get_by_id(self.employee.id).password_changed_at)
        self.assertTrue(self.accounts.login("employee", "brand-new-secret").success)

    def test_change_password_needs_current_secret(self) -> None:
        result = self.accounts.change_password(self.employee.id, "wrong-one", "brand-new-secret")
        self.assertEqual(result.error, ErrorCode.INVALID_CREDENTIAL)

    def test_frozen_account_cannot_change_password(self) -> None:
        add_account(self.session, "iced", self.employee_role, is_frozen=True)
        iced = self.uow.accounts.find_first(Account.username == "iced")
        result = self.accounts.change_password(iced.id, PASSWORD, "brand-new-secret")
        self.assertEqual(result.error, ErrorCode.ACCOUNT_INELIGIBLE)

    def test_admin_change_password_clears_changed_at(self) -> None:
        self.accounts.change_password(self.employee.id, PASSWORD, "first-new-secret")
        pair = self.login("employee", "first-new-secret")
        result = self.accounts.admin_change_password(
            self.employee.id, "admin-set-secret", self.admin.id
        )
        self.assertTrue(result.success, result.message)
        account = self.uow.accounts.get_by_id(self.employee.id)
        self.assertIsNone(account.password_changed_at)
        self.assertEqual(account.updated_by, self.admin.id)
        self.assertFalse(self.tokens.refresh(pair.refresh_token).success)

    def test_admin_change_password_rules(self) -> None:
        sysadmin_target = self.accounts.admin_change_password(
            self.root.id, "whatever-secret", self.root.id
        )
        self.assertEqual(sysadmin_target.error, ErrorCode.POLICY_VIOLATION)

        other = add_account(self.session, "other", self.employee_role)
        by_employee = self.accounts.admin_change_password(
            other.id, "whatever-secret", self.employee.id
        )
        self.assertEqual(by_employee.error, ErrorCode.POLICY_VIOLATION)


class TestDelete(ServiceTestCase):
    def test_delete_removes_account_and_its_tokens(self) -> None:
        self.login("employee")
        employee_id = self.employee.id
        result = self.accounts.delete_account(employee_id)
        self.assertTrue(result.success, result.message)
        self.assertIsNone(self.uow.accounts.find_first(Account.username == "employee"))
        self.assertEqual(
            self.uow.refresh_tokens.count(RefreshToken.account_id == employee_id), 0
        )

    def test_sysadmin_cannot_be_deleted(self) -> None:
        self.assertEqual(
            self.accounts.delete_account(self.root.id).error, ErrorCode.POLICY_VIOLATION
        )
        self.assertEqual(
            self.accounts.delete_user_admin(self.root.id).error, ErrorCode.POLICY_VIOLATION
        )
        self.assertIsNotNone(self.uow.accounts.get_by_id(self.root.id))

    def test_admin_scoped_delete_only_removes_useradmins(self) -> None:
        self.assertEqual(
            self.accounts.delete_user_admin(self.employee.id).error,
            ErrorCode.POLICY_VIOLATION,
        )
        self.assertTrue(self.accounts.delete_user_admin(self.admin.id).success)

    def test_delete_unknown_account(self) -> None:
        self.assertEqual(self.accounts.delete_account(999).error, ErrorCode.NOT_FOUND)


class TestAccountWithoutRole(ServiceTestCase):
    """An account whose role row is gone fails closed instead of skipping tier checks."""

    def setUp(self) -> None:
        super().setUp()
        self.employee.role_id = 9999
        self.session.commit()

    def test_admin_scoped_delete_is_refused(self) -> None:
        result = self.accounts.delete_user_admin(self.employee.id)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertEqual(result.message, "User role not found")
        self.assertIsNotNone(self.uow.accounts.get_by_id(self.employee.id))

    def test_delete_is_refused(self) -> None:
        result = self.accounts.delete_account(self.employee.id)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertIsNotNone(self.uow.accounts.get_by_id(self.employee.id))

    def test_freeze_is_refused(self) -> None:
        result = self.accounts.freeze(self.employee.id, self.admin.id)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertFalse(self.uow.accounts.get_by_id(self.employee.id).is_frozen)

    def test_admin_password_change_is_refused(self) -> None:
        result = self.accounts.admin_change_password(
            self.employee.id, "reset-by-admin-1", self.admin.id
        )
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertTrue(verify_password(PASSWORD, self.employee.password_hash))

    def test_profile_update_is_refused(self) -> None:
        request = UpdateAccountRequest(
            first_name="Renamed",
            last_name="Person",
            username="employee",
            email="employee@example.com",
        )
        result = self.accounts.update_profile(self.employee.id, request, self.admin.id)
        self.assertEqual(result.error, ErrorCode.NOT_FOUND)
        self.assertEqual(self.uow.accounts.get_by_id(self.employee.id).first_name, "Employee")


class TestRequestValidation(unittest.TestCase):
    MALFORMED = [
        "nia.example.com",
        "nia@example..com",
        "nia@-example.com",
        "nia@example.com.",
        "nia@.example.com",
        'ni"a@example.com',
    ]

    def test_malformed_emails_are_rejected(self) -> None:
        for email in self.MALFORMED:
            with self.subTest(email=email):
                with self.assertRaises(ValidationError):
                    _register_request("nia", "EMPLOYEE", email=email)
                with self.assertRaises(ValidationError):
                    UpdateAccountRequest(
                        first_name="Nia", last_name="Person", username="nia", email=email
                    )

    def test_valid_email_is_accepted(self) -> None:
        request = _register_request("nia", "EMPLOYEE", email="nia.person@example.com")
        self.assertEqual(request.email, "nia.person@example.com")


if __name__ == "__main__":
    unittest.main()
