from .errors import store_error_handler

__all__ = ["store_error_handler"]
