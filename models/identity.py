"""
Identity records returned by the authentication / profile boundary.
"""

from pydantic import BaseModel, ConfigDict


class AuthenticatedUser(BaseModel):
    """The signed-in user as reported by the auth provider."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    username: str | None = None

    @property
    def display_name(self) -> str:
        return self.username or self.email or "Administrator"


class Profile(BaseModel):
    """Application account that owns inventory data."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    name: str | None = None
