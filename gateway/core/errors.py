from typing import Optional


# =========================
# Error taxonomy
# =========================
class GatewayError(Exception):
    """Base for every failure the gateway reports to a caller.

    The message is always safe to show: anything that may carry driver text
    goes through the sanitizer before it is put here.
    """

    code: str = "gateway_error"
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(GatewayError):
    code = "invalid_input"


class QueryRejected(GatewayError):
    code = "query_rejected"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class ConfigurationError(GatewayError):
    code = "configuration_error"


class PoolExhausted(GatewayError):
    code = "pool_exhausted"
    retryable = True


class StatementTimeout(GatewayError):
    code = "statement_timeout"
    retryable = True


class BackendError(GatewayError):
    code = "backend_error"


class ConnectionFailed(BackendError):
    code = "connection_failed"
    retryable = True

    def __init__(
        self,
        message: str,
        target: str,
        host: str,
        port: int,
        database: str,
        cause: Optional[str] = None,
    ):
        super().__init__(message)
        self.target = target
        self.host = host
        self.port = port
        self.database = database
        self.cause = cause


class ManagerClosed(GatewayError):
    code = "manager_closed"
    retryable = True
