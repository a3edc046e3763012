"""Authentication schemas for JWT tokens and request actors."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'user', 'admin')")

    @property
    def is_admin(self) -> bool:
        """Check if the user has the admin role."""
        return self.role == "admin"


class TokenPayload(BaseModel):
    """JWT access token payload structure."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's id")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp)

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=self.sub,
            email=self.email,
            role=self.role,
        )


@dataclass(frozen=True)
class AuthenticatedActor:
    """A request made with a valid bearer token."""

    user_id: str
    email: str | None = None
    role: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return True


@dataclass(frozen=True)
class GuestActor:
    """A request made without (valid) credentials, e.g. guest checkout."""

    @property
    def is_authenticated(self) -> bool:
        return False


Actor = AuthenticatedActor | GuestActor
