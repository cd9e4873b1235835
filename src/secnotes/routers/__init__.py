from .auth import router as auth_router
from .records import router as records_router

_routers = [auth_router, records_router]

__all__ = ["get_routers"]


def get_routers():
    return _routers
