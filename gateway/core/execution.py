import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from sqlalchemy import exc as sa_exc

from gateway.core.classifier import RejectReason, StatementKind, classify
from gateway.core.database import PoolRegistry, TargetPool
from gateway.core.errors import (
    BackendError,
    ConnectionFailed,
    GatewayError,
    InvalidInput,
    ManagerClosed,
    PoolExhausted,
    QueryRejected,
    StatementTimeout,
)
from gateway.core.sanitizer import sanitize_message
from gateway.core.schemas import ExecutionOutcome, FieldInfo, QueryRequest
from gateway.core.type_tags import type_tag


# -----------------------------------------------------------------------------
# EXECUTION MODULE
# Purpose: run admitted statements against a named pool with a row cap,
# truncation detection, a timeout and sanitized errors.
# Why: this is the only path caller SQL takes to a database.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

# SQLSTATE query_canceled: raised when statement_timeout fires server-side
QUERY_CANCELED = "57014"

INPUT_REASONS = {RejectReason.INVALID_INPUT, RejectReason.EMPTY}

# PostgreSQL can only nest these in FROM (...); SHOW/EXPLAIN run unwrapped
WRAPPABLE_KINDS = {StatementKind.SELECT, StatementKind.WITH, StatementKind.VALUES}

SUBQUERY_ALIAS = "gate_subquery"


@dataclass(frozen=True)
class RowLimits:
    """Row ceiling for one kind of call site."""

    default: int
    maximum: int

    def clamp(self, requested: Optional[int]) -> int:
        if requested is None:
            requested = self.default
        return max(1, min(int(requested), self.maximum))


PREVIEW_LIMITS = RowLimits(default=10, maximum=100)
QUERY_LIMITS = RowLimits(default=1000, maximum=5000)


def wrap_with_limit(text: str, kind: StatementKind, limit: int) -> str:
    """
    Bound an admitted statement by wrapping it as a subquery.

    Wrapping works whatever trailing clauses the statement has, unlike
    appending LIMIT to the caller's text.
    """
    if kind not in WRAPPABLE_KINDS:
        return text
    return f"SELECT * FROM ({text}) AS {SUBQUERY_ALIAS} LIMIT {int(limit)}"


def sqlstate_of(error: BaseException) -> Optional[str]:
    """Find the SQLSTATE on a driver error, looking through SQLAlchemy wrapping."""
    orig = getattr(error, "orig", None)
    candidates = (error, orig, getattr(orig, "__cause__", None), error.__cause__)
    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def describe_fields(result) -> List[FieldInfo]:
    cursor = getattr(result, "cursor", None)
    description = getattr(cursor, "description", None)
    if description:
        return [FieldInfo(name=column[0], type=type_tag(column[1])) for column in description]
    return [FieldInfo(name=name, type=type_tag(None)) for name in result.keys()]


class ExecutionManager:
    """
    Admission gate in front of the connection pools.

    Every statement is classified before a connection is touched, bounded to
    the clamped row limit (plus one row to detect truncation), executed with
    positional parameters under the session statement timeout, and any failure
    is re-raised as a GatewayError carrying sanitized text only.
    """

    def __init__(
        self,
        registry: PoolRegistry,
        *,
        allow_extended: bool = True,
        statement_timeout_ms: int = 30000,
        client_timeout_grace_ms: int = 2000,
    ):
        self._registry = registry
        self._allow_extended = allow_extended
        self._statement_timeout_ms = statement_timeout_ms
        self._client_timeout = (statement_timeout_ms + client_timeout_grace_ms) / 1000
        self._closing = False
        self._in_flight = 0
        self._drained = asyncio.Event()
        self._drained.set()

    @property
    def targets(self) -> List[str]:
        return self._registry.names()

    @property
    def closed(self) -> bool:
        return self._closing

    async def execute(
        self, request: QueryRequest, limits: RowLimits = QUERY_LIMITS
    ) -> ExecutionOutcome:
        """
        Classify, bound and run one caller statement.

        Args:
            request: Target name, SQL text, positional params and requested limit.
            limits: Default/maximum rows for the calling site.

        Returns:
            ExecutionOutcome with at most the clamped number of rows.

        Raises:
            InvalidInput, QueryRejected, ConfigurationError, PoolExhausted,
            StatementTimeout, ConnectionFailed, BackendError, ManagerClosed.
        """
        self._ensure_open()

        verdict = classify(request.sql, allow_extended=self._allow_extended)
        if not verdict.ok:
            if verdict.reason in INPUT_REASONS:
                raise InvalidInput(verdict.message)
            logger.info(f"Rejected query for {request.target}: {verdict.reason.value}")
            raise QueryRejected(verdict.reason.value, verdict.message)

        pool = self._registry.get(request.target)
        limit = limits.clamp(request.limit)
        statement = wrap_with_limit(verdict.text, verdict.kind, limit + 1)

        async with self._tracked():
            return await self._run(pool, statement, request.params, limit)

    async def check_connection(self, target: str) -> None:
        """Open and release one pooled connection; raises ConnectionFailed/PoolExhausted."""
        self._ensure_open()
        pool = self._registry.get(target)
        async with self._tracked():
            async with self._connect(pool):
                pass

    async def close(self):
        """Stop admitting queries, let in-flight ones finish, then drain every pool."""
        self._closing = True
        if self._in_flight:
            logger.info(f"Waiting for {self._in_flight} in-flight queries before shutdown")
        await self._drained.wait()
        await self._registry.dispose()

    def _ensure_open(self):
        if self._closing:
            raise ManagerClosed("Gateway is shutting down; not accepting new queries")

    # close() waits until every tracked call has left
    @asynccontextmanager
    async def _tracked(self):
        self._in_flight += 1
        self._drained.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._drained.set()

    @asynccontextmanager
    async def _connect(self, pool: TargetPool):
        connection = pool.engine.connect()
        try:
            await connection.start()
        except sa_exc.TimeoutError:
            logger.warning(f"Pool exhausted for {pool.target.describe()}")
            raise PoolExhausted(
                f"No connection available for database '{pool.target.name}'; "
                "all pooled connections are busy"
            ) from None
        except Exception as error:
            raise self._connection_failed(pool, error) from None

        try:
            yield connection
        finally:
            await connection.close()

    async def _run(
        self, pool: TargetPool, statement: str, params: Sequence[Any], limit: int
    ) -> ExecutionOutcome:
        try:
            async with self._connect(pool) as connection:
                try:
                    result = await asyncio.wait_for(
                        connection.exec_driver_sql(statement, tuple(params) if params else None),
                        timeout=self._client_timeout,
                    )
                except asyncio.TimeoutError:
                    # Cancelled mid-query: the connection state is unknown
                    await connection.invalidate()
                    raise self._timeout(pool) from None

                fields = describe_fields(result)
                fetched = result.fetchmany(limit + 1)
        except GatewayError:
            raise
        except Exception as error:
            raise self._translate(pool, error) from None

        truncated = len(fetched) > limit
        rows = [dict(row._mapping) for row in fetched[:limit]]

        return ExecutionOutcome(
            rows=rows, fields=fields, row_count=len(rows), truncated=truncated
        )

    def _timeout(self, pool: TargetPool) -> StatementTimeout:
        logger.warning(
            f"Query on {pool.target.describe()} exceeded {self._statement_timeout_ms} ms"
        )
        return StatementTimeout(
            f"Query exceeded the {self._statement_timeout_ms} ms statement timeout"
        )

    def _connection_failed(self, pool: TargetPool, error: BaseException) -> ConnectionFailed:
        target = pool.target
        cause = sanitize_message(_driver_text(error), pool.secrets)
        logger.error(f"Database connection failed: {target.describe()} - {cause}")
        return ConnectionFailed(
            f"Database connection failed: {target.describe()} - {cause}",
            target=target.name,
            host=target.host,
            port=target.port,
            database=target.database,
            cause=cause,
        )

    def _translate(self, pool: TargetPool, error: BaseException) -> GatewayError:
        if isinstance(error, sa_exc.TimeoutError):
            return PoolExhausted(f"No connection available for database '{pool.target.name}'")

        if sqlstate_of(error) == QUERY_CANCELED:
            return self._timeout(pool)

        message = sanitize_message(_driver_text(error), pool.secrets)
        logger.error(f"Query on {pool.target.describe()} failed: {message}")
        return BackendError(f"Query failed: {message}")


def _driver_text(error: BaseException) -> str:
    # str(DBAPIError) appends the SQL and bound parameters; the driver error does not
    if isinstance(error, sa_exc.DBAPIError) and error.orig is not None:
        return str(error.orig)
    return str(error) or type(error).__name__
