import re
from typing import List

from gateway.core.execution import ExecutionManager
from gateway.core.schemas import (
    ColumnInfo,
    DescribeTableRequest,
    ForeignKeyInfo,
    IndexInfo,
    TableDescription,
)
from gateway.core.tools.catalog import catalog_rows

# -----------------------------------------------------------------------------
# DESCRIBE TABLE
# Purpose: columns, primary key, foreign keys and indexes of one table.
# Why: all four come from fixed catalog queries bound with $1 schema / $2 table.
# -----------------------------------------------------------------------------

COLUMNS_SQL = """
SELECT
  c.column_name,
  c.data_type,
  c.is_nullable,
  c.column_default,
  CASE
    WHEN c.is_identity = 'YES' THEN 'identity'
    WHEN left(c.column_default, 8) = 'nextval(' THEN 'serial'
    ELSE ''
  END AS extra,
  col_description(format('%I.%I', c.table_schema, c.table_name)::regclass, c.ordinal_position) AS column_comment
FROM information_schema.columns c
WHERE c.table_schema = $1 AND c.table_name = $2
ORDER BY c.ordinal_position
"""

PRIMARY_KEY_SQL = """
SELECT kcu.column_name
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
  ON tc.constraint_name = kcu.constraint_name
  AND tc.table_schema = kcu.table_schema
WHERE tc.constraint_type = 'PRIMARY KEY'
  AND tc.table_schema = $1
  AND tc.table_name = $2
ORDER BY kcu.ordinal_position
"""

FOREIGN_KEYS_SQL = """
SELECT
  kcu.column_name,
  ccu.table_name AS referenced_table_name,
  ccu.column_name AS referenced_column_name,
  tc.constraint_name
FROM information_schema.table_constraints AS tc
JOIN information_schema.key_column_usage AS kcu
  ON tc.constraint_name = kcu.constraint_name
  AND tc.table_schema = kcu.table_schema
JOIN information_schema.constraint_column_usage AS ccu
  ON ccu.constraint_name = tc.constraint_name
  AND ccu.table_schema = tc.table_schema
WHERE tc.constraint_type = 'FOREIGN KEY'
  AND tc.table_schema = $1
  AND tc.table_name = $2
"""

INDEXES_SQL = """
SELECT indexname AS index_name, indexdef AS index_definition
FROM pg_indexes
WHERE schemaname = $1 AND tablename = $2
ORDER BY indexname
"""

INDEX_DEF_RE = re.compile(r"USING\s+(\w+)\s*\(([^)]*)\)", re.IGNORECASE)


def parse_index_definition(name: str, definition: str) -> IndexInfo:
    """Read uniqueness, access method and column list out of pg_indexes.indexdef."""
    match = INDEX_DEF_RE.search(definition)
    if match:
        method = match.group(1).upper()
        columns = [column.strip() for column in match.group(2).split(",") if column.strip()]
    else:
        method, columns = "BTREE", []

    return IndexInfo(
        name=name,
        columns=columns,
        unique="UNIQUE INDEX" in definition.upper(),
        type=method,
    )


async def _table_rows(manager: ExecutionManager, request: DescribeTableRequest, sql: str):
    return await catalog_rows(
        manager, request.database.value, sql, [request.schema_name, request.table]
    )


async def describe_table(
    manager: ExecutionManager, request: DescribeTableRequest
) -> TableDescription:
    """
    Describe a table's structure.

    Args:
        manager: Execution manager that owns the pools.
        request: Target database, schema and table name.

    Returns:
        TableDescription with columns, primary key, foreign keys and indexes.

    Example:
        description = await describe_table(manager, DescribeTableRequest(table="users"))
    """
    column_rows = await _table_rows(manager, request, COLUMNS_SQL)
    columns: List[ColumnInfo] = [
        ColumnInfo(
            name=row["column_name"],
            type=row["data_type"],
            nullable=row["is_nullable"] == "YES",
            default=row["column_default"],
            extra=row["extra"] or "",
            comment=row["column_comment"] or "",
        )
        for row in column_rows
    ]

    pk_rows = await _table_rows(manager, request, PRIMARY_KEY_SQL)
    primary_key = [row["column_name"] for row in pk_rows]

    fk_rows = await _table_rows(manager, request, FOREIGN_KEYS_SQL)
    foreign_keys = [
        ForeignKeyInfo(
            name=row["constraint_name"],
            column=row["column_name"],
            referenced_table=row["referenced_table_name"],
            referenced_column=row["referenced_column_name"],
        )
        for row in fk_rows
    ]

    index_rows = await _table_rows(manager, request, INDEXES_SQL)
    indexes = [
        parse_index_definition(row["index_name"], row["index_definition"])
        for row in index_rows
    ]

    return TableDescription(
        table=request.table,
        schema=request.schema_name,
        columns=columns,
        primary_key=primary_key,
        foreign_keys=foreign_keys,
        indexes=indexes,
    )
