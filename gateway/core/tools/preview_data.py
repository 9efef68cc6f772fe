from typing import Any, Dict

from gateway.core.execution import PREVIEW_LIMITS, ExecutionManager
from gateway.core.schemas import ExecutionOutcome, PreviewDataRequest, QueryRequest

TEXT_TRUNCATE = 200
TRUNCATION_SUFFIX = "... (truncated)"


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling any embedded quote."""
    return '"' + name.replace('"', '""') + '"'


def truncate_text(row: Dict[str, Any], max_length: int) -> Dict[str, Any]:
    return {
        key: value[:max_length] + TRUNCATION_SUFFIX
        if isinstance(value, str) and len(value) > max_length
        else value
        for key, value in row.items()
    }


def build_preview_sql(request: PreviewDataRequest) -> str:
    if request.columns:
        selection = ", ".join(quote_ident(column) for column in request.columns)
    else:
        selection = "*"

    sql = f"SELECT {selection} FROM {quote_ident(request.schema_name)}.{quote_ident(request.table)}"

    # The where fragment is caller text; the composed statement goes through
    # the classifier like any other query.
    if request.where and request.where.strip():
        sql += f" WHERE {request.where}"

    return sql


async def preview_data(
    manager: ExecutionManager,
    request: PreviewDataRequest,
    text_limit: int = TEXT_TRUNCATE,
) -> ExecutionOutcome:
    """
    Preview a few rows of a table.
    Why: a quick look at real values without writing SQL.

    Args:
        manager: Execution manager that owns the pools.
        request: Table, optional column list, optional WHERE fragment and limit.
        text_limit: Strings longer than this are cut and suffixed.

    Returns:
        ExecutionOutcome capped by the preview ceiling.
    """
    outcome = await manager.execute(
        QueryRequest(
            target=request.database.value,
            sql=build_preview_sql(request),
            limit=request.limit,
        ),
        PREVIEW_LIMITS,
    )

    return outcome.model_copy(
        update={"rows": [truncate_text(row, text_limit) for row in outcome.rows]}
    )
