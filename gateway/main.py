import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from gateway.api.errors import gateway_error_handler
from gateway.api.router import api_router
from gateway.core.config import settings, resolve_targets
from gateway.core.database import PoolRegistry
from gateway.core.errors import GatewayError
from gateway.core.execution import ExecutionManager

SERVER_NAME = "postgres-readonly-gateway"
SERVER_VERSION = "1.0.0"

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


def create_manager() -> ExecutionManager:
    """Resolve targets once and build the pools the manager will own."""
    targets = resolve_targets(settings)
    registry = PoolRegistry.from_targets(targets, settings)
    return ExecutionManager(
        registry,
        allow_extended=settings.ALLOW_EXTENDED_STATEMENTS,
        statement_timeout_ms=settings.STATEMENT_TIMEOUT_MS,
        client_timeout_grace_ms=settings.CLIENT_TIMEOUT_GRACE_MS,
    )


# Build the pools on startup and drain them once everything is done
@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = create_manager()
    app.state.manager = manager
    app.state.settings = settings

    # A target being down is reported, not fatal: the other one may still serve
    for target in manager.targets:
        try:
            await manager.check_connection(target)
            logger.info(f"Connected to database target '{target}'")
        except GatewayError as error:
            logger.warning(f"Database target '{target}' unavailable: {error.message}")

    logger.info(f"{SERVER_NAME} v{SERVER_VERSION} started")
    yield
    await manager.close()


app = FastAPI(title="PostgreSQL Read-Only Gateway", version=SERVER_VERSION, lifespan=lifespan)

app.add_exception_handler(GatewayError, gateway_error_handler)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"name": SERVER_NAME, "version": SERVER_VERSION}
