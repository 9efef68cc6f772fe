from gateway.core.execution import ExecutionManager
from gateway.core.schemas import DatabaseStats, DbStatsRequest, TableStat
from gateway.core.tools.catalog import catalog_rows

SIZE_SQL = "SELECT pg_size_pretty(pg_database_size(current_database())) AS size"

# pg_stat_user_tables is approximate but never scans a table
TOTALS_SQL = """
SELECT count(*) AS table_count, COALESCE(sum(n_live_tup), 0) AS total_rows
FROM pg_stat_user_tables
"""

LARGEST_TABLES_SQL = """
SELECT
  relname AS table_name,
  n_live_tup AS row_count,
  pg_size_pretty(pg_total_relation_size(relid)) AS total_size
FROM pg_stat_user_tables
ORDER BY n_live_tup DESC NULLS LAST
LIMIT 10
"""


async def db_stats(manager: ExecutionManager, request: DbStatsRequest) -> DatabaseStats:
    """
    Database-wide size and row statistics.

    Returns:
        DatabaseStats with table count, estimated rows, total size and the ten
        largest tables by live rows.
    """
    database = request.database.value

    size_rows = await catalog_rows(manager, database, SIZE_SQL)
    total_size = size_rows[0]["size"] if size_rows else "0 bytes"

    totals = await catalog_rows(manager, database, TOTALS_SQL)
    total_tables = int(totals[0]["table_count"] or 0) if totals else 0
    total_rows = int(totals[0]["total_rows"] or 0) if totals else 0

    largest_rows = await catalog_rows(manager, database, LARGEST_TABLES_SQL)
    largest_tables = [
        TableStat(
            table=row["table_name"],
            rows=int(row["row_count"] or 0),
            size=row["total_size"],
        )
        for row in largest_rows
    ]

    return DatabaseStats(
        database=database,
        total_tables=total_tables,
        total_rows=total_rows,
        total_size=total_size,
        largest_tables=largest_tables,
    )
