from typing import List

from gateway.core.execution import ExecutionManager
from gateway.core.schemas import ListTablesRequest, TableInfo, TableType
from gateway.core.tools.catalog import catalog_rows

LIST_TABLES_SQL = """
SELECT
  t.table_name,
  t.table_type,
  COALESCE(s.n_live_tup, 0) AS row_count_estimate,
  t.table_schema
FROM information_schema.tables t
LEFT JOIN pg_stat_user_tables s
  ON t.table_name = s.relname AND t.table_schema = s.schemaname
WHERE t.table_schema = $1
ORDER BY t.table_name
"""


async def list_tables(
    manager: ExecutionManager, request: ListTablesRequest
) -> List[TableInfo]:
    """
    List tables and views in one schema with an estimated row count.
    Why: the estimate comes from pg_stat_user_tables so no table is scanned.
    """
    rows = await catalog_rows(
        manager, request.database.value, LIST_TABLES_SQL, [request.schema_name]
    )

    return [
        TableInfo(
            name=row["table_name"],
            type=TableType.BASE_TABLE
            if row["table_type"] == TableType.BASE_TABLE.value
            else TableType.VIEW,
            row_count=int(row["row_count_estimate"] or 0),
            schema=row["table_schema"],
        )
        for row in rows
    ]
