import logging
from typing import Any, Dict, List, Sequence

from gateway.core.execution import QUERY_LIMITS, ExecutionManager
from gateway.core.schemas import QueryRequest

logger = logging.getLogger(__name__)


async def catalog_rows(
    manager: ExecutionManager,
    database: str,
    sql: str,
    params: Sequence[Any] = (),
) -> List[Dict[str, Any]]:
    """
    Run fixed catalog SQL under the query ceiling and return its rows.
    A result cut off at the ceiling is logged; the rows returned are still the first ones.
    """
    outcome = await manager.execute(
        QueryRequest(
            target=database,
            sql=sql,
            params=list(params),
            limit=QUERY_LIMITS.maximum,
        ),
        QUERY_LIMITS,
    )

    if outcome.truncated:
        logger.warning(
            f"Catalog query on '{database}' returned more than {outcome.row_count} rows; "
            "result truncated"
        )

    return outcome.rows
