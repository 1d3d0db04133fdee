"""Identity values delivered by the identity provider."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """The signed-in user as seen by the rest of the application."""

    uid: str
    email: str = ""
    display_name: str = Field(default="", alias="displayName")
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    created_at: str = Field(default="", alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def greeting_name(self) -> str:
        """Display name, or the local part of the e-mail address."""
        return self.display_name or self.email.split("@")[0]


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ProviderLoginRequest(BaseModel):
    """Federated sign-in with an OAuth ID token obtained by the front-end popup."""

    id_token: str = Field(min_length=1, alias="idToken")
    provider_id: Optional[str] = Field(default=None, alias="providerId")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class RegisterRequest(LoginRequest):
    display_name: str = Field(default="", alias="displayName")

    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)
