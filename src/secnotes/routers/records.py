from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends

from secnotes.core.codec import Codec
from secnotes.core.store import RecordStore
from secnotes.models.records import RecordPatch, RecordView
from secnotes.models.requests import (
    CreateRecordRequest,
    DeleteRecordRequest,
    DeleteRecordResponse,
    GetRecordRequest,
    ListRecordsRequest,
    ListRecordsResponse,
    SignedPayload,
    UpdateRecordRequest,
)
from secnotes.shared import Logger, load_config
from secnotes.shared.db import engine
from secnotes.shared.http import store_error_handler

logger = Logger(__name__).get_logger()

router = APIRouter()

config = load_config()


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    """Build the store once; the key is read from the environment only here."""
    logger.info("Loading record key from %s", config.codec.key_env)
    return RecordStore(engine, Codec.from_env(config.codec.key_env))


Store = Annotated[RecordStore, Depends(get_record_store)]


@router.post("/records/create", response_model=RecordView)
async def create_record(
    data: Annotated[
        CreateRecordRequest, Depends(SignedPayload.unwrap(CreateRecordRequest))
    ],
    store: Store,
):
    with store_error_handler():
        return store.create(data.username, data.title, data.sensitive_text)


@router.post("/records/list", response_model=ListRecordsResponse)
async def list_records(
    data: Annotated[
        ListRecordsRequest, Depends(SignedPayload.unwrap(ListRecordsRequest))
    ],
    store: Store,
):
    with store_error_handler():
        records = store.list(data.username, limit=data.limit, offset=data.offset)
    return ListRecordsResponse(records=records)


@router.post("/records/get", response_model=RecordView)
async def get_record(
    data: Annotated[GetRecordRequest, Depends(SignedPayload.unwrap(GetRecordRequest))],
    store: Store,
):
    with store_error_handler():
        return store.get(data.username, data.id)


@router.post("/records/update", response_model=RecordView)
async def update_record(
    data: Annotated[
        UpdateRecordRequest, Depends(SignedPayload.unwrap(UpdateRecordRequest))
    ],
    store: Store,
):
    # Carry over only what the client actually sent
    patch = RecordPatch.model_validate(
        data.model_dump(include={"title", "sensitive_text", "completed"}, exclude_unset=True)
    )
    with store_error_handler():
        return store.update(data.username, data.id, patch)


@router.post("/records/delete", response_model=DeleteRecordResponse)
async def delete_record(
    data: Annotated[
        DeleteRecordRequest, Depends(SignedPayload.unwrap(DeleteRecordRequest))
    ],
    store: Store,
):
    with store_error_handler():
        store.delete(data.username, data.id)
    return DeleteRecordResponse(message="Record deleted successfully")
