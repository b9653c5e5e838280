# residence_service/rate_limiter.py
import os
import time
from typing import Dict, List

from fastapi import Depends, HTTPException, Request, status

from . import models
from .auth import get_current_user

# Simple sliding-window rate limiters
WINDOW_SECONDS = 60
MAX_REQUESTS_PER_WINDOW = 10
MAX_BOOKINGS_PER_WINDOW = 20

_request_log: Dict[str, List[float]] = {}
_user_request_log: Dict[int, List[float]] = {}


def _hit(log: Dict, key, limit: int) -> bool:
    """
    Record one request for ``key``; return False if the window is full.
    """
    now = time.time()
    window_start = now - WINDOW_SECONDS

    # keep only timestamps inside the window
    timestamps = [ts for ts in log.get(key, []) if ts >= window_start]
    if len(timestamps) >= limit:
        log[key] = timestamps
        return False

    timestamps.append(now)
    log[key] = timestamps
    return True


def ip_rate_limiter(request: Request):
    """
    Rate limit based on client IP + path.

    Used for unauthenticated endpoints:
    - POST /api/v1/auth/register
    - POST /api/v1/auth/login
    """
    # Skip rate limiting completely in automated tests
    if os.getenv("TESTING") == "1":
        return
    client_ip = request.client.host if request.client else "unknown"
    key = f"{client_ip}:{request.url.path}"

    if not _hit(_request_log, key, MAX_REQUESTS_PER_WINDOW):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests from this IP, please slow down",
        )


def booking_rate_limiter(current_user: models.User = Depends(get_current_user)):
    """
    Rate limit booking mutations per authenticated user.
    """
    if os.getenv("TESTING") == "1":
        return
    if not _hit(_user_request_log, current_user.id, MAX_BOOKINGS_PER_WINDOW):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many booking operations in a short time",
        )
