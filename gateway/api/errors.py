from fastapi import Request, status
from fastapi.responses import JSONResponse

from gateway.core import errors
from gateway.core.schemas import ErrorResponse

STATUS_CODES = {
    errors.InvalidInput: status.HTTP_400_BAD_REQUEST,
    errors.QueryRejected: status.HTTP_400_BAD_REQUEST,
    errors.ConfigurationError: status.HTTP_400_BAD_REQUEST,
    errors.PoolExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
    errors.ManagerClosed: status.HTTP_503_SERVICE_UNAVAILABLE,
    errors.StatementTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
    errors.ConnectionFailed: status.HTTP_502_BAD_GATEWAY,
    errors.BackendError: status.HTTP_502_BAD_GATEWAY,
}


def status_for(error: errors.GatewayError) -> int:
    # Most specific class first: ConnectionFailed is also a BackendError
    for error_class in type(error).__mro__:
        if error_class in STATUS_CODES:
            return STATUS_CODES[error_class]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def gateway_error_handler(request: Request, error: errors.GatewayError) -> JSONResponse:
    body = ErrorResponse(
        code=error.code,
        message=error.message,
        reason=getattr(error, "reason", None),
        retryable=error.retryable,
    )
    return JSONResponse(status_code=status_for(error), content=body.model_dump())
