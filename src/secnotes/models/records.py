from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RecordView(BaseModel):
    """A record as its owner sees it: sensitive text decrypted, no envelope."""

    model_config = ConfigDict(extra="forbid")

    id: int
    owner_id: str
    title: str
    sensitive_text: str
    completed: bool
    created_at: datetime
    updated_at: datetime


class RecordPatch(BaseModel):
    """Partial update of a record.

    A field is part of the update only if it was set when the patch was
    built, so ``RecordPatch(completed=True)`` leaves title and sensitive
    text alone. Setting a field to ``None`` is rejected by the store.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    sensitive_text: str | None = None
    completed: bool | None = None

    def present_fields(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}
