import base64
import binascii
from typing import Annotated

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from secnotes.models.requests import (
    RegisterAccount,
    RegisterAccountResponse,
    SignedPayload,
)
from secnotes.models.schema import User
from secnotes.shared import Logger
from secnotes.shared.db import engine

logger = Logger(__name__).get_logger()

router = APIRouter()


@router.post("/auth/register", response_model=RegisterAccountResponse)
async def register(
    data: Annotated[
        RegisterAccount, Depends(SignedPayload.unwrap_no_checks(RegisterAccount))
    ],
):
    """
    Register a username together with its Ed25519 public key.

    Every later request is signed with the matching private key; the
    verified username is the owner of the records the request touches.
    """
    try:
        public_key_bytes = base64.b64decode(data.public_key, validate=True)
        Ed25519PublicKey.from_public_bytes(public_key_bytes)
    except (binascii.Error, ValueError) as e:
        logger.warning("Rejected public key for %s", data.username)
        raise HTTPException(status_code=400, detail="Invalid public key") from e

    with Session(engine) as session:
        existing_user = session.exec(
            select(User).where(User.username == data.username)
        ).first()
        if existing_user:
            raise HTTPException(status_code=403, detail="Username already exists")

        new_user = User(username=data.username, public_key=public_key_bytes)
        session.add(new_user)
        session.commit()
        session.refresh(new_user)

    logger.info("Registered user %s", data.username)
    return RegisterAccountResponse(
        message="User registered successfully", user_id=new_user.id
    )
