from typing import Annotated, List

from fastapi import APIRouter, Depends

from gateway.core import schemas
from gateway.core.config import Settings
from gateway.core.dependencies import get_manager, get_settings
from gateway.core.execution import ExecutionManager
from gateway.core.tools import (
    db_stats,
    describe_table,
    list_tables,
    preview_data,
    show_relations,
)

router = APIRouter(tags=["Catalog"])

manager_dep = Annotated[ExecutionManager, Depends(get_manager)]
settings_dep = Annotated[Settings, Depends(get_settings)]


@router.get("/tables", response_model=List[schemas.TableInfo])
async def get_tables(
    manager: manager_dep,
    database: schemas.TargetName = schemas.TargetName.DB,
    schema: str = "public",
):
    """List tables and views in a schema with estimated row counts."""
    return await list_tables.list_tables(
        manager, schemas.ListTablesRequest(database=database, schema=schema)
    )


@router.get("/tables/{table}", response_model=schemas.TableDescription)
async def get_table(
    table: str,
    manager: manager_dep,
    database: schemas.TargetName = schemas.TargetName.DB,
    schema: str = "public",
):
    """Columns, primary key, foreign keys and indexes of one table."""
    return await describe_table.describe_table(
        manager,
        schemas.DescribeTableRequest(table=table, database=database, schema=schema),
    )


@router.post("/tables/{table}/preview", response_model=schemas.ExecutionOutcome)
async def post_table_preview(
    table: str,
    body: schemas.PreviewDataBody,
    manager: manager_dep,
    settings: settings_dep,
):
    """
    Preview rows of a table (default 10, max 100).
    Long text values are cut to keep responses small.
    """
    request = schemas.PreviewDataRequest(table=table, **body.model_dump())
    return await preview_data.preview_data(
        manager, request, text_limit=settings.TEXT_TRUNCATE
    )


@router.get("/tables/{table}/relations", response_model=List[schemas.RelationInfo])
async def get_table_relations(
    table: str,
    manager: manager_dep,
    database: schemas.TargetName = schemas.TargetName.DB,
    schema: str = "public",
):
    return await show_relations.show_relations(
        manager,
        schemas.ShowRelationsRequest(table=table, database=database, schema=schema),
    )


@router.get("/stats", response_model=schemas.DatabaseStats)
async def get_stats(
    manager: manager_dep,
    database: schemas.TargetName = schemas.TargetName.DB,
):
    """Database size, table count and the largest tables."""
    return await db_stats.db_stats(manager, schemas.DbStatsRequest(database=database))
