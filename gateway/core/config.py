from typing import Dict, Optional, Any

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from gateway.core.errors import ConfigurationError
from gateway.core.schemas import BackendTarget, TargetName

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseSettings):
    # Shared fallback for both targets
    DATABASE_URL: Optional[str] = None

    # Primary target
    DB_URL: Optional[str] = None
    DB_DATABASE_URL: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: Optional[str] = None
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_NAME: Optional[str] = None
    DB_SSL: Optional[str] = None
    DB_SSL_REJECT_UNAUTHORIZED: Optional[str] = None

    # Secondary target
    DB2_URL: Optional[str] = None
    DB2_DATABASE_URL: Optional[str] = None
    DB2_HOST: Optional[str] = None
    DB2_PORT: Optional[str] = None
    DB2_USER: Optional[str] = None
    DB2_PASSWORD: Optional[str] = None
    DB2_NAME: Optional[str] = None
    DB2_SSL: Optional[str] = None
    DB2_SSL_REJECT_UNAUTHORIZED: Optional[str] = None

    # Execution limits
    STATEMENT_TIMEOUT_MS: int = 30000
    CLIENT_TIMEOUT_GRACE_MS: int = 2000
    POOL_SIZE: int = 5
    POOL_TIMEOUT_SECONDS: float = 5.0
    CONNECT_TIMEOUT_SECONDS: float = 5.0
    POOL_RECYCLE_SECONDS: int = 300
    ALLOW_EXTENDED_STATEMENTS: bool = True
    TEXT_TRUNCATE: int = 200

    APPLICATION_NAME: str = "postgres-readonly-gateway"
    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def parse_bool(value: Optional[str], default: bool) -> bool:
    """Lenient env boolean: unknown spellings fall back to the default."""
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return default


def parse_port(value: Optional[str], name: str) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        port = int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid port for database target '{name}'")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Invalid port for database target '{name}'")
    return port


def parse_database_url(url: str, name: str) -> Dict[str, Any]:
    """
    Split a postgres URL into connection parameters.
    The URL itself never appears in error messages because it may hold a password.

    Args:
        url: postgres:// or postgresql[+driver]:// URL.
        name: Target the URL belongs to (for error messages).

    Returns:
        Dict with host, port, user, password and database.
    """
    try:
        parsed = make_url(url)
    except ArgumentError:
        raise ConfigurationError(f"Invalid database URL for target '{name}'")

    if parsed.get_backend_name() not in ("postgres", "postgresql"):
        raise ConfigurationError(
            f"Unsupported database protocol in URL for target '{name}': "
            f"{parsed.get_backend_name()}"
        )

    if not parsed.database:
        raise ConfigurationError(f"Database name is missing in URL for target '{name}'")

    return {
        "host": parsed.host or "localhost",
        "port": parsed.port or 5432,
        "user": parsed.username or "postgres",
        "password": parsed.password or "",
        "database": parsed.database,
    }


def resolve_targets(settings: Settings) -> Dict[str, BackendTarget]:
    """
    Resolve both database targets from settings.

    Discrete DB_* / DB2_* variables win over the target URL; db2 inherits
    host, port, user, password and TLS settings from db when they are unset.

    Returns:
        Mapping of target name to its immutable BackendTarget.
    """
    db_url = settings.DB_URL or settings.DB_DATABASE_URL or settings.DATABASE_URL
    db2_url = settings.DB2_URL or settings.DB2_DATABASE_URL or settings.DATABASE_URL

    db_from_url = parse_database_url(db_url, TargetName.DB.value) if db_url else {}
    db2_from_url = parse_database_url(db2_url, TargetName.DB2.value) if db2_url else {}

    db_ssl = parse_bool(settings.DB_SSL, True)
    db_ssl_verify = parse_bool(settings.DB_SSL_REJECT_UNAUTHORIZED, True)

    db = BackendTarget(
        name=TargetName.DB.value,
        host=settings.DB_HOST or db_from_url.get("host") or "localhost",
        port=parse_port(settings.DB_PORT, TargetName.DB.value)
        or db_from_url.get("port")
        or 5432,
        user=settings.DB_USER or db_from_url.get("user") or "postgres",
        password=settings.DB_PASSWORD or db_from_url.get("password") or "",
        database=settings.DB_NAME or db_from_url.get("database") or "postgres",
        ssl=db_ssl,
        ssl_verify=db_ssl_verify,
    )

    db2 = BackendTarget(
        name=TargetName.DB2.value,
        host=settings.DB2_HOST or db2_from_url.get("host") or db.host,
        port=parse_port(settings.DB2_PORT, TargetName.DB2.value)
        or db2_from_url.get("port")
        or db.port,
        user=settings.DB2_USER or db2_from_url.get("user") or db.user,
        password=settings.DB2_PASSWORD
        or db2_from_url.get("password")
        or db.password.get_secret_value(),
        database=settings.DB2_NAME or db2_from_url.get("database") or "postgres",
        ssl=parse_bool(settings.DB2_SSL, db_ssl),
        ssl_verify=parse_bool(settings.DB2_SSL_REJECT_UNAUTHORIZED, db_ssl_verify),
    )

    return {db.name: db, db2.name: db2}


# Create a single instance of the settings to use everywhere
settings = Settings()
