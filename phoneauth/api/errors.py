from fastapi import Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

import phoneauth.observability.metrics as metrics
from phoneauth.api.schemas import ErrorResponse
from phoneauth.core import state_machine as sm
from phoneauth.core.errors import PhoneAuthError
from phoneauth.observability.logging import log

STATUS_BY_KIND = {
    "validation_error": 400,
    "invalid_code": 401,
    "provider_error": 502,
    "session_bridge_failed": 502,
}


def record_metric(fn, *args) -> None:
    """Counters are best-effort; a Redis outage must not fail a login step."""
    try:
        fn(*args)
    except RedisError as e:
        log(event="metrics_write_failed", error=str(e)[:200])


async def phone_auth_error_handler(request: Request, exc: PhoneAuthError) -> JSONResponse:
    record_metric(metrics.increment_error, exc.kind)
    state = exc.attempt.state if exc.attempt is not None else sm.FAILED
    body = ErrorResponse(
        error=exc.kind,
        message=exc.message,
        state=state,
        retryable=bool(exc.retryable),
    )
    return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 500), content=body.model_dump())
