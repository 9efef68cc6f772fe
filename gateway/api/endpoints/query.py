from typing import Annotated, List

from fastapi import APIRouter, Depends

from gateway.core import errors, schemas
from gateway.core.dependencies import get_manager
from gateway.core.execution import ExecutionManager
from gateway.core.tools import run_query

router = APIRouter(tags=["Query"])

manager_dep = Annotated[ExecutionManager, Depends(get_manager)]


@router.post("/query", response_model=schemas.ExecutionOutcome)
async def post_query(payload: schemas.RunQueryRequest, manager: manager_dep):
    """
    Run a read-only query (SELECT, SHOW, EXPLAIN, WITH, VALUES).
    Results are capped (default 1000, max 5000 rows); `truncated` tells
    whether more rows existed.
    """
    return await run_query.run_query(manager, payload)


@router.get("/health", response_model=List[schemas.TargetHealth])
async def health_check(manager: manager_dep):
    """Connectivity of every configured database target."""
    report = []
    for target in manager.targets:
        try:
            await manager.check_connection(target)
            report.append(schemas.TargetHealth(target=target, status="ok"))
        except errors.GatewayError as error:
            report.append(
                schemas.TargetHealth(target=target, status=error.code, detail=error.message)
            )
    return report
