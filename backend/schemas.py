"""Request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=72)


class SubmissionIn(BaseModel):
    """Contest entry as posted by a player. Unknown fields are dropped."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=80)
    wallet: str | None = Field(default=None, max_length=120)
    pnl: float = 0
    score: float = 0
    tx_hash: str | None = Field(default=None, max_length=120, alias="txHash")
    note: str | None = Field(default=None, max_length=500)


class Submission(SubmissionIn):
    id: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
