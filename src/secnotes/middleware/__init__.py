from .rate_limit import RateLimit

__all__ = ["RateLimit"]
