from pydantic import Field

from .serde_base import SerdeBase


class RegisterAccount(SerdeBase):
    username: str = Field(..., min_length=1, max_length=64)
    public_key: str  # Base64 encoded raw Ed25519 public key


class RegisterAccountResponse(SerdeBase):
    message: str
    user_id: int
