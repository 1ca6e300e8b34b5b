"""Token service: issue, verify, rotate and revoke access/refresh credential pairs.

Access tokens are signed JWTs decoded without a storage hit. Refresh tokens are opaque
strings persisted in refresh_tokens; each one can be redeemed for a new pair at most once.
"""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm.exc import StaleDataError

from app.core.security import (
    CLAIM_EMAIL,
    CLAIM_FIRST_NAME,
    CLAIM_LAST_NAME,
    CLAIM_ROLE,
    CLAIM_ROLE_NAME,
    CLAIM_USERNAME,
    create_access_token,
    decode_access_token,
    generate_refresh_token_string,
    signing_key,
)
from app.models import Account, RefreshToken, Role
from app.models.base import utcnow
from app.repositories import UnitOfWork
from app.schemas.auth import CurrentUser, IssuedToken, RevokeAllResult, TokenPair
from app.schemas.common import ApiResponse, ErrorCode
from app.services.boundary import service_boundary

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

REASON_ROTATED = "rotated"
REASON_LOGOUT = "Logged out by user"
REASON_REVOKED_BY_REQUEST = "Revoked by request"
REASON_REVOKED_BY_ADMIN = "Revoked by admin"

GENERIC_AUTH_FAILURE = "Authentication failed"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


def authentication_failure(
    settings: "Settings", message: str, error: ErrorCode
) -> ApiResponse[Any]:
    """
    Failure result for login/refresh. With AUTH_GENERIC_FAILURES the caller sees one
    generic message and category; the specific reason is only logged.
    """
    logger.info("Authentication rejected: %s (%s)", message, error.value)
    if settings.AUTH_GENERIC_FAILURES:
        return ApiResponse.fail(GENERIC_AUTH_FAILURE, ErrorCode.INVALID_CREDENTIAL)
    return ApiResponse.fail(message, error)


def verify_access_token(token: str, settings: "Settings") -> CurrentUser:
    """
    Validate signature, expiry, issuer and audience, then extract the identity claims.
    Raises jwt.PyJWTError for invalid tokens and ValueError for a malformed subject.
    """
    payload = decode_access_token(token, settings)
    return CurrentUser(
        id=int(payload["sub"]),
        username=payload[CLAIM_USERNAME],
        email=payload.get(CLAIM_EMAIL, ""),
        role=payload[CLAIM_ROLE],
        first_name=payload.get(CLAIM_FIRST_NAME, ""),
        last_name=payload.get(CLAIM_LAST_NAME, ""),
        role_name=payload.get(CLAIM_ROLE_NAME, ""),
    )


class TokenService:
    """Credential pair lifecycle bound to one unit of work."""

    def __init__(self, uow: UnitOfWork, settings: "Settings") -> None:
        # Fails with ConfigurationError on a missing or weak key before any request is served.
        signing_key(settings)
        self.uow = uow
        self.settings = settings

    def issue_access_token(
        self, account: Account, role: Role, now: datetime | None = None
    ) -> IssuedToken:
        claims = {
            "sub": account.id,
            CLAIM_USERNAME: account.username,
            CLAIM_EMAIL: account.email,
            CLAIM_ROLE: role.ref_code,
            CLAIM_FIRST_NAME: account.first_name,
            CLAIM_LAST_NAME: account.last_name,
            CLAIM_ROLE_NAME: role.name,
        }
        token, expires_at = create_access_token(claims, self.settings, now)
        return IssuedToken(token=token, expires_at=expires_at)

    def issue_refresh_token(self, account_id: int, now: datetime | None = None) -> RefreshToken:
        """Create and stage a refresh token; it is persisted when the caller commits."""
        issued_at = now or utcnow()
        record = RefreshToken(
            token=generate_refresh_token_string(),
            account_id=account_id,
            expires_at=issued_at + timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS),
            is_revoked=False,
            created_at=issued_at,
            created_by=account_id,
        )
        self.uow.refresh_tokens.add(record)
        return record

    def issue_pair(self, account: Account, role: Role, now: datetime | None = None) -> TokenPair:
        access = self.issue_access_token(account, role, now)
        refresh = self.issue_refresh_token(account.id, now)
        return TokenPair(
            access_token=access.token,
            access_token_expires_at=access.expires_at,
            refresh_token=refresh.token,
            refresh_token_expires_at=refresh.expires_at,
        )

    def verify_access_token(self, token: str) -> CurrentUser:
        return verify_access_token(token, self.settings)

    def revoke_all_for_account(
        self, account_id: int, reason: str, now: datetime | None = None
    ) -> int:
        """Revoke every active refresh token of an account inside the caller's transaction."""
        when = now or utcnow()
        candidates = self.uow.refresh_tokens.find(
            RefreshToken.account_id == account_id,
            RefreshToken.is_revoked.is_(False),
        )
        active = [t for t in candidates if not t.is_expired_at(when)]
        for record in active:
            record.revoke(reason, when)
        return len(active)

    @service_boundary("Token refresh failed")
    def refresh(self, token_string: str) -> ApiResponse[TokenPair]:
        """
        Exchange a refresh token for a new pair and revoke it in the same transaction.

        A second redemption of the same token always fails: it is no longer active, or
        (for a concurrent attempt) the version check rejects the losing update.
        """
        now = utcnow()
        record = self.uow.refresh_tokens.find_first(RefreshToken.token == token_string)
        if record is None or record.is_revoked or record.is_expired_at(now):
            return authentication_failure(
                self.settings, INVALID_REFRESH_TOKEN, ErrorCode.INVALID_CREDENTIAL
            )

        account = self.uow.accounts.get_by_id(record.account_id)
        if account is None or account.is_frozen:
            return authentication_failure(
                self.settings,
                "User not found or account is frozen",
                ErrorCode.ACCOUNT_INELIGIBLE,
            )

        role = self.uow.roles.get_by_id(account.role_id)
        if role is None:
            return authentication_failure(
                self.settings, "User role not found", ErrorCode.NOT_FOUND
            )

        try:
            with self.uow.transaction():
                record.revoke(REASON_ROTATED, now)
                pair = self.issue_pair(account, role, now)
                record.replaced_by = pair.refresh_token
                record.updated_by = account.id
        except StaleDataError:
            logger.warning(
                "Concurrent redemption of refresh token id=%s rejected", record.id
            )
            return authentication_failure(
                self.settings, INVALID_REFRESH_TOKEN, ErrorCode.INVALID_CREDENTIAL
            )

        logger.info("Rotated refresh token for account_id=%s", account.id)
        return ApiResponse.ok(pair, "Token refreshed successfully")

    @service_boundary("Token revocation failed")
    def revoke(
        self,
        token_string: str,
        reason: str | None = None,
        when: datetime | None = None,
    ) -> ApiResponse[str]:
        """Revoke one token. An inactive token is reported as ALREADY_INACTIVE and left untouched."""
        record = self.uow.refresh_tokens.find_first(RefreshToken.token == token_string)
        if record is None:
            return ApiResponse.fail("Token not found", ErrorCode.NOT_FOUND)
        if not record.is_active:
            return ApiResponse.fail("Token is already inactive", ErrorCode.ALREADY_INACTIVE)

        with self.uow.transaction():
            record.revoke(reason or REASON_REVOKED_BY_REQUEST, when)
        return ApiResponse.ok("Token revoked successfully", "Token has been revoked")

    @service_boundary("Token revocation failed")
    def revoke_all(
        self,
        account_id: int,
        reason: str | None = None,
        when: datetime | None = None,
    ) -> ApiResponse[RevokeAllResult]:
        if not self.uow.accounts.exists(Account.id == account_id):
            return ApiResponse.fail("User not found", ErrorCode.NOT_FOUND)

        with self.uow.transaction():
            count = self.revoke_all_for_account(
                account_id, reason or REASON_REVOKED_BY_ADMIN, when
            )
        if count == 0:
            return ApiResponse.fail("No active tokens to revoke", ErrorCode.ALREADY_INACTIVE)
        logger.info("Revoked %s refresh tokens for account_id=%s", count, account_id)
        return ApiResponse.ok(
            RevokeAllResult(revoked_count=count), "All user tokens have been revoked"
        )

    @service_boundary("Logout failed")
    def logout(self, token_string: str) -> ApiResponse[str]:
        """Revoke the presented token if it is still active. Always succeeds for the caller."""
        record = self.uow.refresh_tokens.find_first(RefreshToken.token == token_string)
        if record is not None and record.is_active:
            with self.uow.transaction():
                record.revoke(REASON_LOGOUT)
        return ApiResponse.ok("Logged out successfully", "User logged out successfully")
