"""Account model - EventTrack user accounts.

Holds identity, the bcrypt credential, profile fields collected at
registration, and the two single-use token slots (email verification and
password reset).
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from eventtrack.core.tokens import TokenKind
from eventtrack.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")


class Account(Base, TimestampMixin):
    """EventTrack user account.

    Token slots are written only through attach_token() and clear_token(),
    which keep each token and its expiry in step.

    Attributes:
        id: UUID primary key.
        username: Unique login name.
        email: Unique email address (stored lowercase).
        password_hash: bcrypt hash of the current password.
        first_name: Given name.
        last_name: Family name.
        contact_no: Phone number.
        sex: Free-form value from the registration form.
        image: Profile image URL.
        image_id: Image host's identifier for the profile image.
        is_verified: True once the email verification link was followed.
        verification_token: Pending email verification token.
        verification_token_expires: Expiry of verification_token.
        reset_password_token: Pending password reset token.
        reset_password_expires: Expiry of reset_password_token.
        token_invalidated_before: Session JWTs issued before this are rejected.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_no: Mapped[str | None] = mapped_column(String(30), nullable=True)
    sex: Mapped[str | None] = mapped_column(String(20), nullable=True)
    image: Mapped[str | None] = mapped_column(Text(), nullable=True)
    image_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    verification_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    verification_token_expires: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    reset_password_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reset_password_expires: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    token_invalidated_before: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    def attach_token(self, kind: TokenKind, token: str, expires: datetime) -> None:
        """Store a freshly generated token and its expiry, replacing any old one."""
        setattr(self, kind.token_field, token)
        setattr(self, kind.expires_field, expires)

    def clear_token(self, kind: TokenKind) -> None:
        """Drop a consumed token together with its expiry."""
        setattr(self, kind.token_field, None)
        setattr(self, kind.expires_field, None)

    def token_for(self, kind: TokenKind) -> tuple[str | None, datetime | None]:
        """Return the (token, expires) pair stored for a kind."""
        return getattr(self, kind.token_field), getattr(self, kind.expires_field)
