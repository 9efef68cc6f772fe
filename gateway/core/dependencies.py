from fastapi import Request

from gateway.core.config import Settings
from gateway.core.execution import ExecutionManager


# The lifespan puts one manager on app.state; routes only ever see the manager
def get_manager(request: Request) -> ExecutionManager:
    return request.app.state.manager


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
