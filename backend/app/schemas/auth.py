"""Schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr


class Credentials(BaseModel):
    """Username and password pair used by signup, login and account deletion."""

    username: constr(strip_whitespace=True, min_length=1, max_length=64) = Field(
        ..., description="Unique, case-sensitive username"
    )
    password: constr(min_length=1, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )


class UserRead(BaseModel):
    """Representation of a user returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    username: str
    created_at: datetime


class LoginResult(BaseModel):
    """Outcome of a successful credential check."""

    username: str
    status: str = "ok"
