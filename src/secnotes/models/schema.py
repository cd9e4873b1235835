from datetime import datetime

from sqlalchemy import Index, Text
from sqlmodel import Field, SQLModel

# Record ids are positive signed 64-bit integers
MAX_RECORD_ID = 2**63 - 1


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(..., unique=True, index=True, description="Unique username")
    public_key: bytes = Field(..., description="User's raw Ed25519 public key")


class Record(SQLModel, table=True):
    __table_args__ = (
        Index("ix_record_owner_created", "owner_id", "created_at", "id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    owner_id: str = Field(
        ..., index=True, description="Identifier of the principal that created the record"
    )
    title: str = Field(..., max_length=255, description="Plain-text title")
    sensitive_envelope: str = Field(
        ...,
        sa_type=Text,
        description="Codec envelope of the sensitive text, never returned to callers",
    )
    completed: bool = Field(default=False, description="Completion flag")
    created_at: datetime = Field(..., description="Timestamp when record was created")
    updated_at: datetime = Field(..., description="Timestamp of the last mutation")
