"""
Rate limiting for graded submissions
====================================
Each graded submission costs one Judge0 batch per test case set, so the
submit endpoint is limited per client address.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import Config
from .errors import error_body

limiter = Limiter(key_func=get_remote_address, enabled=Config.RATE_LIMIT_ENABLED)

SUBMISSION_RATE_LIMIT = f"{Config.RATE_LIMIT_SUBMISSIONS_PER_MINUTE}/minute"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_body(429, f"Rate limit exceeded: {exc.detail}. Please wait before submitting again."),
    )


def register_rate_limiter(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
