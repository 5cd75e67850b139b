"""
User models.

Users are part of the storage contract only; no route reads or writes them.
Passwords are kept in clear text, which is a known weakness of this design.
"""

from pydantic import BaseModel, Field, field_validator


class InsertUser(BaseModel):
    """Validated payload for creating a user."""

    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)

    @field_validator('username', mode='before')
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v


class User(InsertUser):
    """A stored user with its integer identifier."""

    id: int
