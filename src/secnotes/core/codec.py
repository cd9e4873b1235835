"""
core.codec
~~~~~~~~~~

AES-256-GCM codec for the sensitive text of a record.

An envelope is ``base64(nonce || ciphertext || tag)``: a 12-byte random
nonce, ciphertext the same length as the plaintext, and the 16-byte GCM
authentication tag. The envelope is self-contained, so it is stored as a
single text column and needs no auxiliary state to be opened again.
"""

from __future__ import annotations

import base64
import binascii
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secnotes.core.errors import FormatError, IntegrityError

#: 256-bit key
KEY_SIZE: int = 32

#: 96-bit nonce, the size GCM is specified for
NONCE_SIZE: int = 12

#: 128-bit authentication tag appended by AESGCM.encrypt
TAG_SIZE: int = 16


def generate_key() -> bytes:
    """Return a fresh random 256-bit key."""
    return secrets.token_bytes(KEY_SIZE)


class Codec:
    """Seal and open envelopes under one fixed key.

    The key is handed over once at construction and cannot be read back or
    replaced afterwards. Instances are safe to share between threads.
    """

    __slots__ = ("_aead",)

    def __init__(self, key: bytes):
        if not isinstance(key, bytes) or len(key) != KEY_SIZE:
            raise ValueError(f"Codec key must be exactly {KEY_SIZE} bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_env(cls, var_name: str) -> Codec:
        """
        Build a codec from a hex-encoded key in the environment.

        Raises :class:`RuntimeError` if the variable is not set and
        :class:`ValueError` if it does not decode to a 256-bit key.
        """
        value = os.getenv(var_name)
        if value is None:
            raise RuntimeError(f"{var_name} must be set before records can be stored.")
        try:
            key = bytes.fromhex(value.strip())
        except ValueError as e:
            raise ValueError(f"{var_name} is not valid hex") from e
        return cls(key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key=<hidden>)"

    def seal(self, plaintext: bytes) -> str:
        """Encrypt *plaintext* under a fresh nonce and return the envelope."""
        nonce = secrets.token_bytes(NONCE_SIZE)
        # AESGCM.encrypt returns ciphertext || tag
        sealed = self._aead.encrypt(nonce, plaintext, None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def open(self, envelope: str | bytes) -> bytes:
        """
        Verify and decrypt an envelope produced by :meth:`seal`.

        Raises :class:`FormatError` if the envelope is not decodable or too
        short, and :class:`IntegrityError` if the tag does not verify. No
        plaintext is returned unless authentication succeeded.
        """
        try:
            encoded = envelope.encode("ascii") if isinstance(envelope, str) else envelope
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError("Envelope is not valid base64") from e

        # Non-zero padding bits decode to the same bytes; only the exact
        # encoding produced by seal is accepted
        if base64.b64encode(raw) != encoded:
            raise FormatError("Envelope is not canonical base64")

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise FormatError("Envelope is too short")

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise IntegrityError("Envelope failed authentication") from e
