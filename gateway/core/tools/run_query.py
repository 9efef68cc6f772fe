from gateway.core.execution import QUERY_LIMITS, ExecutionManager
from gateway.core.schemas import ExecutionOutcome, QueryRequest, RunQueryRequest


async def run_query(manager: ExecutionManager, request: RunQueryRequest) -> ExecutionOutcome:
    """Run free-form caller SQL under the ad-hoc query ceiling."""
    return await manager.execute(
        QueryRequest(
            target=request.database.value, sql=request.query, limit=request.limit
        ),
        QUERY_LIMITS,
    )
