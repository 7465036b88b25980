"""Token-gated account workflows: email verification and password reset.

Two halves per workflow:

Initiation (request_verification, request_password_reset) runs four shared
steps through WorkflowRunner, parameterized only by a TokenPolicy:

1. generate_token  - TokenGenerator
2. load_account    - by id (verification) or email (reset)
3. attach_token    - expiry = now + TTL, persisted via AccountStore.save
4. notify          - email with {scheme}://{host}/{verify|reset}/{token}

The first failing step ends the run. A token persisted in step 3 stays
persisted if step 4 fails; the caller sees the NotifyError and may request
again, which overwrites the token.

Consumption (verify_account, reset_password) looks the token up together with
its expiry in one store call, using a single ``now`` sampled at the start, so
a token valid at lookup is never rejected later in the same request. A
successful consumption clears the token, persists, and signs the account in
through the caller-supplied ``login`` capability. The reset confirmation
email is sent afterwards; its failure is reported on the result and never
reverts the password change.

Known race: nothing serializes two requests for the same account. Two
initiations, or an initiation racing a consumption, resolve as
last-write-wins in the store.
"""

import inspect
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from eventtrack.core.auth import hash_password
from eventtrack.core.errors import (
    AccountNotFoundError,
    APIError,
    NotifyError,
    PasswordMismatchError,
    SessionEstablishmentError,
    TokenInvalidOrExpiredError,
    ValidationError,
)
from eventtrack.core.tokens import (
    TokenGenerator,
    TokenKind,
    build_token_link,
    get_token_generator,
)
from eventtrack.models.account import Account
from eventtrack.notifications.base import Notifier, OutboundMessage
from eventtrack.notifications.templates import (
    password_changed_message,
    password_reset_message,
    verification_message,
)
from eventtrack.repositories.account_store import AccountStore
from eventtrack.services.workflow_runner import WorkflowRunner, WorkflowStep

logger = structlog.get_logger()

Clock = Callable[[], datetime]
LoginFn = Callable[[Account], Awaitable[None] | None]

DEFAULT_VERIFICATION_TTL = timedelta(hours=24)
DEFAULT_RESET_TTL = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Policies and results
# =============================================================================


@dataclass(frozen=True)
class TokenPolicy:
    """What differs between the verification and reset initiations.

    Attributes:
        kind: Token slot and link segment.
        ttl: Token lifetime from generation.
        build_message: Builds the email from (destination, link).
        confirmation: User-facing success text; ``{email}`` is substituted.
    """

    kind: TokenKind
    ttl: timedelta
    build_message: Callable[..., OutboundMessage]
    confirmation: str


@dataclass(frozen=True)
class InitiationReceipt:
    """Outcome of a successful initiation.

    The token itself is deliberately absent: it only leaves the process in
    the emailed link.
    """

    kind: TokenKind
    account_id: uuid.UUID
    destination: str
    expires_at: datetime
    message: str


@dataclass
class ConsumptionResult:
    """Outcome of a successful consumption.

    Attributes:
        account: The account after the state change was persisted.
        kind: Which token was consumed.
        message: User-facing success text.
        notification_error: Set if the follow-up confirmation email failed.
    """

    account: Account
    kind: TokenKind
    message: str
    notification_error: NotifyError | None = None

    @property
    def notification_sent(self) -> bool:
        """False if a follow-up email was attempted and failed."""
        return self.notification_error is None


@dataclass
class _InitiationContext:
    policy: TokenPolicy
    load_account: Callable[[], Awaitable[Account | None]]
    scheme: str
    host: str
    token: str | None = None
    account: Account | None = None
    expires_at: datetime | None = None


@dataclass
class _ConsumptionContext:
    kind: TokenKind
    token: str
    now: datetime
    login: LoginFn
    new_password: str | None = None
    confirm_password: str | None = None
    account: Account | None = None


# =============================================================================
# Workflow service
# =============================================================================


class TokenWorkflow:
    """Orchestrates token initiation and consumption for one request.

    Args:
        store: Account persistence.
        notifier: Outbound email sender.
        generator: Token source. Defaults to the process-wide generator.
        clock: Returns the current UTC time. Tests inject a fixed clock.
        verification_ttl: Lifetime of verification tokens.
        reset_ttl: Lifetime of password reset tokens.
        password_hasher: Turns a plain-text password into a stored hash.
    """

    def __init__(
        self,
        store: AccountStore,
        notifier: Notifier,
        *,
        generator: TokenGenerator | None = None,
        clock: Clock = _utcnow,
        verification_ttl: timedelta = DEFAULT_VERIFICATION_TTL,
        reset_ttl: timedelta = DEFAULT_RESET_TTL,
        password_hasher: Callable[[str], str] = hash_password,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._generator = generator or get_token_generator()
        self._clock = clock
        self._hash_password = password_hasher

        self.verification_policy = TokenPolicy(
            kind=TokenKind.VERIFICATION,
            ttl=verification_ttl,
            build_message=verification_message,
            confirmation=(
                "Your verification token has been sent to {email}. "
                "Please follow the instructions as per the mail."
            ),
        )
        self.reset_policy = TokenPolicy(
            kind=TokenKind.PASSWORD_RESET,
            ttl=reset_ttl,
            build_message=password_reset_message,
            confirmation="An e-mail has been sent to {email} with further instructions.",
        )

        initiation_steps = [
            WorkflowStep("generate_token", self._generate_token),
            WorkflowStep("load_account", self._load_account),
            WorkflowStep("attach_token", self._attach_token),
            WorkflowStep("notify", self._send_link),
        ]
        self._verification_request = WorkflowRunner(
            "verification_request", initiation_steps
        )
        self._reset_request = WorkflowRunner("password_reset_request", initiation_steps)

        self._verify_consumption = WorkflowRunner(
            "verify_account",
            [
                WorkflowStep("find_account", self._find_by_token),
                WorkflowStep("mark_verified", self._mark_verified),
                WorkflowStep("persist", self._persist),
                WorkflowStep("start_session", self._start_session),
            ],
        )
        self._reset_consumption = WorkflowRunner(
            "reset_password",
            [
                WorkflowStep("find_account", self._find_by_token),
                WorkflowStep("check_confirmation", self._check_confirmation),
                WorkflowStep("replace_credential", self._replace_credential),
                WorkflowStep("persist", self._persist),
                WorkflowStep("start_session", self._start_session),
            ],
        )

    # -------------------------------------------------------------------------
    # Initiation
    # -------------------------------------------------------------------------

    async def request_verification(
        self, account_id: uuid.UUID, *, scheme: str, host: str
    ) -> InitiationReceipt:
        """Issue a verification token for an account and email the link.

        Raises:
            AccountNotFoundError: No account has this id.
            StorageError: The token could not be persisted.
            NotifyError: The email failed; the token remains persisted.
            RandomnessFailure: Token generation is unavailable.
        """
        _require_link_origin(scheme, host)
        context = _InitiationContext(
            policy=self.verification_policy,
            load_account=lambda: self._store.get_by_id(account_id),
            scheme=scheme,
            host=host,
        )
        outcome = await self._verification_request.run(
            context, on_complete=_log_completion("verification_request")
        )
        return outcome.unwrap()

    async def request_password_reset(
        self, email: str, *, scheme: str, host: str
    ) -> InitiationReceipt:
        """Issue a reset token for the account with this email and email the link.

        Raises:
            AccountNotFoundError: No account has this email.
            StorageError: The token could not be persisted.
            NotifyError: The email failed; the token remains persisted.
            RandomnessFailure: Token generation is unavailable.
        """
        _require_link_origin(scheme, host)
        context = _InitiationContext(
            policy=self.reset_policy,
            load_account=lambda: self._store.get_by_email(email),
            scheme=scheme,
            host=host,
        )
        outcome = await self._reset_request.run(
            context, on_complete=_log_completion("password_reset_request")
        )
        return outcome.unwrap()

    async def _generate_token(self, context: _InitiationContext) -> _InitiationContext:
        context.token = self._generator.generate()
        return context

    async def _load_account(self, context: _InitiationContext) -> _InitiationContext:
        account = await context.load_account()
        if account is None:
            raise AccountNotFoundError()
        context.account = account
        return context

    async def _attach_token(self, context: _InitiationContext) -> _InitiationContext:
        assert context.account is not None and context.token is not None
        expires_at = self._clock() + context.policy.ttl
        context.account.attach_token(context.policy.kind, context.token, expires_at)
        await self._store.save(context.account)
        context.expires_at = expires_at
        logger.info(
            "token_attached",
            kind=context.policy.kind.value,
            account_id=str(context.account.id),
            expires_at=expires_at.isoformat(),
        )
        return context

    async def _send_link(self, context: _InitiationContext) -> InitiationReceipt:
        assert context.account is not None and context.token is not None
        assert context.expires_at is not None
        link = build_token_link(
            scheme=context.scheme,
            host=context.host,
            kind=context.policy.kind,
            token=context.token,
        )
        message = context.policy.build_message(
            destination=context.account.email, link=link
        )
        await self._notifier.send_message(message)
        return InitiationReceipt(
            kind=context.policy.kind,
            account_id=context.account.id,
            destination=context.account.email,
            expires_at=context.expires_at,
            message=context.policy.confirmation.format(email=context.account.email),
        )

    # -------------------------------------------------------------------------
    # Consumption
    # -------------------------------------------------------------------------

    async def check_reset_token(self, token: str) -> Account:
        """Confirm a reset link is still usable without consuming it.

        Raises:
            TokenInvalidOrExpiredError: Unknown, consumed or expired token.
        """
        account = await self._store.get_by_token(
            TokenKind.PASSWORD_RESET, token, now=self._clock()
        )
        if account is None:
            raise TokenInvalidOrExpiredError(TokenKind.PASSWORD_RESET.value)
        return account

    async def verify_account(self, token: str, *, login: LoginFn) -> ConsumptionResult:
        """Consume a verification token and mark the account verified.

        Raises:
            TokenInvalidOrExpiredError: Unknown, consumed or expired token.
            StorageError: The change could not be persisted.
            SessionEstablishmentError: Persisted, but login failed.
        """
        context = _ConsumptionContext(
            kind=TokenKind.VERIFICATION,
            token=token,
            now=self._clock(),
            login=login,
        )
        outcome = await self._verify_consumption.run(
            context, on_complete=_log_completion("verify_account")
        )
        account = outcome.unwrap()
        return ConsumptionResult(
            account=account,
            kind=TokenKind.VERIFICATION,
            message="Your Account has been verified.",
        )

    async def reset_password(
        self,
        token: str,
        password: str,
        confirm: str,
        *,
        login: LoginFn,
    ) -> ConsumptionResult:
        """Consume a reset token and replace the account's password.

        A mismatched confirmation fails before anything is written, so the
        same link can be retried until it expires.

        Raises:
            TokenInvalidOrExpiredError: Unknown, consumed or expired token.
            PasswordMismatchError: password and confirm differ.
            StorageError: The change could not be persisted.
            SessionEstablishmentError: Persisted, but login failed.
        """
        context = _ConsumptionContext(
            kind=TokenKind.PASSWORD_RESET,
            token=token,
            now=self._clock(),
            login=login,
            new_password=password,
            confirm_password=confirm,
        )
        outcome = await self._reset_consumption.run(
            context, on_complete=_log_completion("reset_password")
        )
        if not outcome.succeeded and "persist" in outcome.completed_steps:
            # The new credential is stored; the owner is told even if login failed.
            assert context.account is not None
            await self._notify_password_changed(context.account)
        account = outcome.unwrap()

        result = ConsumptionResult(
            account=account,
            kind=TokenKind.PASSWORD_RESET,
            message="Your Password has been changed successfully!",
        )
        result.notification_error = await self._notify_password_changed(account)
        return result

    async def _notify_password_changed(self, account: Account) -> NotifyError | None:
        try:
            await self._notifier.send_message(
                password_changed_message(
                    destination=account.email, username=account.username
                )
            )
        except NotifyError as exc:
            logger.warning(
                "password_changed_notification_failed",
                account_id=str(account.id),
            )
            return exc
        return None

    async def _find_by_token(self, context: _ConsumptionContext) -> _ConsumptionContext:
        account = await self._store.get_by_token(
            context.kind, context.token, now=context.now
        )
        if account is None:
            raise TokenInvalidOrExpiredError(context.kind.value)
        context.account = account
        return context

    async def _mark_verified(self, context: _ConsumptionContext) -> _ConsumptionContext:
        assert context.account is not None
        context.account.is_verified = True
        context.account.clear_token(TokenKind.VERIFICATION)
        return context

    async def _check_confirmation(
        self, context: _ConsumptionContext
    ) -> _ConsumptionContext:
        if not context.new_password:
            raise ValidationError("New password is required.")
        if context.new_password != context.confirm_password:
            raise PasswordMismatchError()
        return context

    async def _replace_credential(
        self, context: _ConsumptionContext
    ) -> _ConsumptionContext:
        assert context.account is not None and context.new_password is not None
        context.account.password_hash = self._hash_password(context.new_password)
        context.account.clear_token(TokenKind.PASSWORD_RESET)
        # Sessions issued before the reset stop working. Truncated to whole
        # seconds because JWT iat is encoded as integer seconds.
        context.account.token_invalidated_before = context.now.replace(microsecond=0)
        return context

    async def _persist(self, context: _ConsumptionContext) -> _ConsumptionContext:
        assert context.account is not None
        await self._store.save(context.account)
        return context

    async def _start_session(self, context: _ConsumptionContext) -> Account:
        assert context.account is not None
        try:
            started = context.login(context.account)
            if inspect.isawaitable(started):
                await started
        except APIError:
            raise
        except Exception as exc:
            raise SessionEstablishmentError() from exc
        return context.account


def _require_link_origin(scheme: str, host: str) -> None:
    if scheme not in ("http", "https") or not host:
        raise ValidationError("Cannot build a link without the request's host.")


def _log_completion(workflow: str) -> Callable[[Exception | None, Any], None]:
    def on_complete(error: Exception | None, _result: Any) -> None:
        if error is None:
            logger.info("token_workflow_complete", workflow=workflow)
        else:
            logger.info(
                "token_workflow_failed",
                workflow=workflow,
                error_type=type(error).__name__,
            )

    return on_complete
