"""
Abuse protection.

- RateLimiter: per-client sliding window with temporary bans
"""

from .rate_limit import RateLimiter, RequestWindow, WINDOW_MS

__all__ = ["RateLimiter", "RequestWindow", "WINDOW_MS"]
