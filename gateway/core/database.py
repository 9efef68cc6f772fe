import logging
import ssl
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from gateway.core.config import Settings
from gateway.core.errors import ConfigurationError
from gateway.core.schemas import BackendTarget

logger = logging.getLogger(__name__)


def build_ssl(target: BackendTarget) -> Union[bool, ssl.SSLContext]:
    if not target.ssl:
        return False

    context = ssl.create_default_context()
    if not target.ssl_verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def build_engine(target: BackendTarget, settings: Settings) -> AsyncEngine:
    """
    Create the bounded async pool for one target.

    Every pooled connection is opened with a server-side statement_timeout and
    read-only transactions, so the database itself stops long or writing work.
    """
    url = URL.create(
        "postgresql+asyncpg",
        username=target.user,
        password=target.password.get_secret_value(),
        host=target.host,
        port=target.port,
        database=target.database,
    )

    return create_async_engine(
        url,
        pool_size=settings.POOL_SIZE,
        max_overflow=0,
        pool_timeout=settings.POOL_TIMEOUT_SECONDS,
        pool_recycle=settings.POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
        connect_args={
            "ssl": build_ssl(target),
            "timeout": settings.CONNECT_TIMEOUT_SECONDS,
            "server_settings": {
                "application_name": settings.APPLICATION_NAME,
                "statement_timeout": str(settings.STATEMENT_TIMEOUT_MS),
                "default_transaction_read_only": "on",
            },
        },
    )


@dataclass(frozen=True)
class TargetPool:
    target: BackendTarget
    engine: AsyncEngine

    @property
    def secrets(self) -> Tuple[str, ...]:
        password = self.target.password.get_secret_value()
        return (password,) if password else ()


class PoolRegistry:
    """Owns one connection pool per configured target for the process lifetime."""

    def __init__(self, pools: Dict[str, TargetPool]):
        self._pools = dict(pools)

    @classmethod
    def from_targets(
        cls, targets: Dict[str, BackendTarget], settings: Settings
    ) -> "PoolRegistry":
        pools = {}
        for name, target in targets.items():
            pools[name] = TargetPool(target=target, engine=build_engine(target, settings))
            logger.info(f"Created pool for {target.describe()} (size {settings.POOL_SIZE})")
        return cls(pools)

    def names(self) -> List[str]:
        return list(self._pools)

    def get(self, name: str) -> TargetPool:
        try:
            return self._pools[name]
        except KeyError:
            raise ConfigurationError(f"Unknown database target: {name}")

    async def dispose(self):
        # Drain and close every pool
        for name, pool in self._pools.items():
            await pool.engine.dispose()
            logger.info(f"Closed pool for {pool.target.describe()}")
        self._pools.clear()
