from contextlib import contextmanager

from fastapi import HTTPException

from secnotes.core.errors import (
    BackendError,
    CodecError,
    NotFoundError,
    ValidationError,
)
from secnotes.shared import Logger

__all__ = ["store_error_handler"]

logger = Logger(__name__).get_logger()


@contextmanager
def store_error_handler(stacklevel=1):
    """Translate record store failures into HTTP errors.

    Codec failures mean corrupted data or a misconfigured key, never a
    client mistake, so they surface as a generic 500.
    """
    # Go 3 levels up to escape @contextmanager methods and current function
    kw = {"stacklevel": 2 + stacklevel}
    try:
        yield

    except ValidationError as e:
        logger.info("Rejected request: %s", e, **kw)
        raise HTTPException(status_code=400, detail=str(e)) from e

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Record not found") from e

    except CodecError as e:
        logger.error("Stored record could not be opened: %s", type(e).__name__, **kw)
        raise HTTPException(status_code=500, detail="Internal server error") from e

    except BackendError as e:
        logger.error("Record backend unavailable: %s", e, **kw)
        raise HTTPException(status_code=503, detail="Service unavailable") from e
