from .records import (
    CreateRecordRequest,
    DeleteRecordRequest,
    DeleteRecordResponse,
    GetRecordRequest,
    ListRecordsRequest,
    ListRecordsResponse,
    UpdateRecordRequest,
)
from .register_account import RegisterAccount, RegisterAccountResponse
from .serde_base import SerdeBase
from .signed_payload import SignedPayload

__all__ = [
    "CreateRecordRequest",
    "DeleteRecordRequest",
    "DeleteRecordResponse",
    "GetRecordRequest",
    "ListRecordsRequest",
    "ListRecordsResponse",
    "RegisterAccount",
    "RegisterAccountResponse",
    "SerdeBase",
    "SignedPayload",
    "UpdateRecordRequest",
]
