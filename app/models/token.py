"""OAuth2 token payloads."""

from pydantic import BaseModel, Field


class Token(BaseModel):
    """Bearer tokens returned by login and refresh."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token lifetime in seconds")


class TokenData(BaseModel):
    """Subject read back from a verified access token."""

    username: str


class TokenRefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)
