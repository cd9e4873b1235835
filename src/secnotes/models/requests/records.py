import re

from pydantic import Field, field_validator

from secnotes.models.records import RecordView
from secnotes.models.schema import MAX_RECORD_ID

from .serde_base import SerdeBase

# C0/C1 control characters; the sensitive text keeps newlines and tabs
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_CONTROL_CHARS_KEEP_LINES = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


def clean_title(value):
    if isinstance(value, str):
        return _CONTROL_CHARS.sub("", value).strip()
    return value


def clean_sensitive_text(value):
    if isinstance(value, str):
        return _CONTROL_CHARS_KEEP_LINES.sub("", value).strip()
    return value


class CreateRecordRequest(SerdeBase):
    username: str
    title: str = Field(..., min_length=1, max_length=255)
    sensitive_text: str = Field(default="", max_length=2000)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return clean_title(value)

    @field_validator("sensitive_text", mode="before")
    @classmethod
    def strip_sensitive_text(cls, value):
        return clean_sensitive_text(value)


class ListRecordsRequest(SerdeBase):
    username: str
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GetRecordRequest(SerdeBase):
    username: str
    id: int = Field(..., ge=1, le=MAX_RECORD_ID)


class UpdateRecordRequest(SerdeBase):
    """Only the fields present in the payload are changed."""

    username: str
    id: int = Field(..., ge=1, le=MAX_RECORD_ID)
    title: str | None = Field(default=None, min_length=1, max_length=255)
    sensitive_text: str | None = Field(default=None, max_length=2000)
    completed: bool | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return clean_title(value)

    @field_validator("sensitive_text", mode="before")
    @classmethod
    def strip_sensitive_text(cls, value):
        return clean_sensitive_text(value)


class DeleteRecordRequest(SerdeBase):
    username: str
    id: int = Field(..., ge=1, le=MAX_RECORD_ID)


class ListRecordsResponse(SerdeBase):
    records: list[RecordView]


class DeleteRecordResponse(SerdeBase):
    message: str
