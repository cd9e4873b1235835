from collections import deque
from time import monotonic

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from secnotes.shared import Config, Logger, load_config

logger = Logger(__name__).get_logger()
config: Config = load_config()
config_rate_limit = config.network.rate_limit

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class TooManyRequests(Exception):
    pass


class RateLimit(BaseHTTPMiddleware):
    """Rate limit and payload size guard for the FastAPI endpoints.

    Sliding one-second window per client host. A host that exceeds
    `max_per_second` is locked out for `timeout_period_s` seconds.
    Bodies larger than `max_body_bytes` are refused with 413 before they
    reach a router, whether announced by content-length or sent chunked.
    Hosts whose window has emptied are forgotten.
    """

    def __init__(
        self,
        app,
        dispatch=None,
        timeout_period_s=config_rate_limit.timeout_period,
        max_per_second=config_rate_limit.requests_per_second,
        max_body_bytes=config.network.max_body_bytes,
    ):
        super().__init__(app, dispatch)

        # Params
        self.__max_per_second = max_per_second
        self.__timeout_period_s = timeout_period_s
        self.__max_body_bytes = max_body_bytes

        # Checks
        self.__bucket: dict[str, deque[float]] = {}
        self.__timeout_club: dict[str, float] = {}

        # Time
        self.__now = monotonic()
        self.__last_prune = float("-inf")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Skip rate limiting for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        host = request.client.host if request.client else "unknown"

        try:
            self._admit(host, monotonic())
        except TooManyRequests:
            logger.warning("Rate limit exceeded for %s", host)
            return JSONResponse(status_code=429, content={"detail": "Too many requests."})

        content_length = request.headers.get("content-length")
        if content_length is not None and content_length.isdigit():
            if int(content_length) > self.__max_body_bytes:
                logger.warning("Payload of %s bytes refused for %s", content_length, host)
                return self.__too_large()
        elif request.method in BODY_METHODS:
            # No length announced; the body is read once and replayed downstream
            body = await request.body()
            if len(body) > self.__max_body_bytes:
                logger.warning("Chunked payload of %s bytes refused for %s", len(body), host)
                return self.__too_large()

        return await call_next(request)

    @property
    def tracked_hosts(self) -> int:
        return len(self.__bucket)

    def _admit(self, key: str, now: float):
        self.__now = now
        try:
            self.__check(key)
        finally:
            if self.__now - self.__last_prune > 1:
                self.__prune()

    @staticmethod
    def __too_large() -> JSONResponse:
        return JSONResponse(status_code=413, content={"detail": "Payload too large."})

    def __check(self, key: str):
        # record the request timestamp
        # reject while the key is timed out
        # prune entries older than one second
        # time the key out once the window holds more than `max_per_second`
        self.__timeout_check(key)

        queue = self.__bucket.setdefault(key, deque())
        queue.append(self.__now)

        while self.__now - queue[0] > 1:
            queue.popleft()

        if len(queue) > self.__max_per_second:
            self.__timeout(key)
            raise TooManyRequests()

    def __timeout_check(self, key: str):
        if key not in self.__timeout_club:
            return

        timeout_timestamp = self.__timeout_club[key]

        if self.__now - timeout_timestamp > self.__timeout_period_s:
            del self.__timeout_club[key]
        else:
            raise TooManyRequests()

    def __timeout(self, key: str):
        self.__timeout_club[key] = self.__now
        del self.__bucket[key]

    def __prune(self):
        self.__last_prune = float("-inf")

        for key in [k for k, queue in self.__bucket.items() if self.__now - queue[-1] > 1]:
            del self.__bucket[key]
        for key in [
            k
            for k, since in self.__timeout_club.items()
            if self.__now - since > self.__timeout_period_s
        ]:
            del self.__timeout_club[key]
