"""Failure kinds raised by the codec and the record store.

Messages carry only the error kind and non-sensitive identifiers
(record id, owner id). Plaintext, keys and envelopes never appear here.
"""


class SecnotesError(Exception):
    """Base class for every failure the core reports."""


class ValidationError(SecnotesError):
    """Input out of range or of the wrong type."""


class NotFoundError(SecnotesError):
    """No record visible to this owner.

    Raised both when the record does not exist and when it belongs to
    someone else; the message is the same in both cases.
    """

    def __init__(self):
        super().__init__("Record not found")


class CodecError(SecnotesError):
    """An envelope could not be opened."""


class FormatError(CodecError):
    """Envelope is not valid base64 or is too short to hold nonce and tag."""


class IntegrityError(CodecError):
    """Authentication tag did not verify (tampering, corruption or wrong key)."""


class BackendError(SecnotesError):
    """The persistence backend failed; callers may retry."""
