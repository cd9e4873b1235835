import json
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from fastapi import HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session, select

from secnotes.core.verify import signature_verify
from secnotes.models.schema import User
from secnotes.shared import Logger
from secnotes.shared.db import engine

logger = Logger(__name__).get_logger()

T = TypeVar("T", bound=BaseModel)

UnwrapHandler = Callable[[Request], Awaitable[T]]


class SignedPayload(BaseModel, Generic[T]):
    payload: str  # JSON string payload (minified)
    signature: str  # Base64-encoded signature
    username: str  # Plaintext string of username

    @classmethod
    def unwrap(cls, output_type: type[T]) -> UnwrapHandler[T]:
        return cls._create_handler(output_type, verify_signature=True)

    @classmethod
    def unwrap_no_checks(cls, output_type: type[T]) -> UnwrapHandler[T]:
        return cls._create_handler(output_type, verify_signature=False)

    @classmethod
    def _create_handler(
        cls,
        output_type: type[T],
        verify_signature: bool,
    ) -> UnwrapHandler[T]:
        logger.debug(
            "Creating unwrap handler for output type: %s (verify: %s)",
            output_type.__name__,
            verify_signature,
        )

        async def unwrap_handler(request: Request) -> T:
            # Payload contents are never logged: they may hold sensitive text
            try:
                signed_payload = cls.model_validate(await request.json())

                if verify_signature:
                    signed_payload.verify()

                result = output_type.model_validate(json.loads(signed_payload.payload))

            except (ValueError, json.JSONDecodeError) as e:
                logger.warning(
                    "Failed to unwrap %s payload: %s", output_type.__name__, type(e).__name__
                )
                raise HTTPException(status_code=400, detail="Invalid payload") from e

            # The identity inside the payload must be the one that signed it
            claimed = getattr(result, "username", signed_payload.username)
            if verify_signature and claimed != signed_payload.username:
                logger.warning(
                    "Payload claims %s but was signed by %s", claimed, signed_payload.username
                )
                raise HTTPException(status_code=403, detail="Identity mismatch")

            logger.debug(
                "Unwrapped %s payload from %s", output_type.__name__, signed_payload.username
            )
            return result

        return unwrap_handler

    def verify(self):
        with Session(engine) as session:
            statement = select(User).where(User.username == self.username)
            user = session.exec(statement).first()

        if user is None:
            raise HTTPException(
                status_code=404,
                detail="User does not exist",
            )

        public_key = Ed25519PublicKey.from_public_bytes(user.public_key)

        signature_verify(
            public_key=public_key,
            signature=self.signature,
            data=self.payload,
        )
