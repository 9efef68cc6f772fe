from typing import Optional, List, Dict, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr


# =========================
# Enums
# =========================
class TargetName(str, Enum):
    DB = "db"
    DB2 = "db2"


class TableType(str, Enum):
    BASE_TABLE = "BASE TABLE"
    VIEW = "VIEW"


class RelationType(str, Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"


# =========================
# BACKEND TARGET
# =========================
class BackendTarget(BaseModel):
    """
    Resolved connection parameters for one named database.
    Never leaves the gateway; the password only renders as '**********'.
    """

    name: str
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: SecretStr = SecretStr("")
    database: str = "postgres"
    ssl: bool = True
    ssl_verify: bool = True

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        # Non-secret identifying metadata, safe for logs and error messages
        return f"{self.name}@{self.host}:{self.port}/{self.database}"


# =========================
# EXECUTION
# =========================
class QueryRequest(BaseModel):
    target: str = TargetName.DB.value
    sql: str
    params: List[Any] = []
    limit: Optional[int] = None


class FieldInfo(BaseModel):
    name: str
    type: str


class ExecutionOutcome(BaseModel):
    rows: List[Dict[str, Any]]
    fields: List[FieldInfo]
    row_count: int
    truncated: bool


class ErrorResponse(BaseModel):
    code: str
    message: str
    reason: Optional[str] = None
    retryable: bool = False


class TargetHealth(BaseModel):
    target: str
    status: str
    detail: Optional[str] = None


# =========================
# CATALOG TOOL REQUESTS
# =========================
class ToolRequest(BaseModel):
    database: TargetName = TargetName.DB

    model_config = ConfigDict(populate_by_name=True)


class SchemaScopedRequest(ToolRequest):
    schema_name: str = Field(default="public", alias="schema", min_length=1)


class ListTablesRequest(SchemaScopedRequest):
    pass


class DescribeTableRequest(SchemaScopedRequest):
    table: str = Field(min_length=1)


class ShowRelationsRequest(SchemaScopedRequest):
    table: str = Field(min_length=1)


class PreviewDataRequest(SchemaScopedRequest):
    table: str = Field(min_length=1)
    columns: Optional[List[str]] = None
    limit: Optional[int] = None
    where: Optional[str] = None


class RunQueryRequest(ToolRequest):
    query: str = Field(min_length=1)
    limit: Optional[int] = None


class DbStatsRequest(ToolRequest):
    pass


# Request bodies for the HTTP layer (table comes from the path)
class PreviewDataBody(BaseModel):
    database: TargetName = TargetName.DB
    schema_name: str = Field(default="public", alias="schema", min_length=1)
    columns: Optional[List[str]] = None
    limit: Optional[int] = None
    where: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


# =========================
# CATALOG TOOL RESPONSES
# =========================
class TableInfo(BaseModel):
    name: str
    type: TableType
    row_count: int
    schema_name: str = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class ColumnInfo(BaseModel):
    name: str
    type: str
    nullable: bool
    default: Optional[str] = None
    extra: str = ""
    comment: str = ""


class ForeignKeyInfo(BaseModel):
    name: str
    column: str
    referenced_table: str
    referenced_column: str


class IndexInfo(BaseModel):
    name: str
    columns: List[str]
    unique: bool
    type: str = "BTREE"


class TableDescription(BaseModel):
    table: str
    schema_name: str = Field(alias="schema")
    columns: List[ColumnInfo]
    primary_key: List[str]
    foreign_keys: List[ForeignKeyInfo]
    indexes: List[IndexInfo]

    model_config = ConfigDict(populate_by_name=True)


class RelationInfo(BaseModel):
    table: str
    column: str
    foreign_key: str
    relation_type: RelationType


class TableStat(BaseModel):
    table: str
    rows: int
    size: str


class DatabaseStats(BaseModel):
    database: str
    total_tables: int
    total_rows: int
    total_size: str
    largest_tables: List[TableStat] = []
