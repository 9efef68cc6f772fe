from typing import List

from gateway.core.execution import ExecutionManager
from gateway.core.schemas import (
    RelationInfo,
    RelationType,
    ShowRelationsRequest,
)
from gateway.core.tools.catalog import catalog_rows

RELATIONS_SQL = """
SELECT
  kcu.table_name AS table_name,
  kcu.column_name AS column_name,
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
  AND (
    (tc.table_schema = $1 AND tc.table_name = $2)
    OR (ccu.table_schema = $1 AND ccu.table_name = $2)
  )
"""


async def show_relations(
    manager: ExecutionManager, request: ShowRelationsRequest
) -> List[RelationInfo]:
    """
    Foreign-key relations in both directions for one table.

    Outgoing keys (this table references another) are reported as one-to-one,
    incoming keys (another table references this one) as one-to-many.
    """
    rows = await catalog_rows(
        manager,
        request.database.value,
        RELATIONS_SQL,
        [request.schema_name, request.table],
    )

    relations: List[RelationInfo] = []
    for row in rows:
        if row["table_name"] == request.table:
            relations.append(
                RelationInfo(
                    table=row["referenced_table_name"],
                    column=row["column_name"],
                    foreign_key=row["constraint_name"],
                    relation_type=RelationType.ONE_TO_ONE,
                )
            )
        else:
            relations.append(
                RelationInfo(
                    table=row["table_name"],
                    column=row["column_name"],
                    foreign_key=row["constraint_name"],
                    relation_type=RelationType.ONE_TO_MANY,
                )
            )

    return relations
