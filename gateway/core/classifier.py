import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Union


# -----------------------------------------------------------------------------
# CLASSIFIER MODULE
# Purpose: decide whether caller-supplied SQL is a single read-only statement.
# Why: this is the admission gate; anything not provably read-only is refused.
# It is lexical on purpose: leading-keyword allow-list plus whole-text scans.
# -----------------------------------------------------------------------------


class StatementKind(str, Enum):
    SELECT = "SELECT"
    SHOW = "SHOW"
    EXPLAIN = "EXPLAIN"
    WITH = "WITH"
    VALUES = "VALUES"


class RejectReason(str, Enum):
    INVALID_INPUT = "invalid-input"
    EMPTY = "empty"
    MULTIPLE_STATEMENTS = "multiple-statements"
    DISALLOWED_STATEMENT_TYPE = "disallowed-statement-type"
    FORBIDDEN_KEYWORD = "forbidden-keyword"
    BLOCKED_FUNCTION = "blocked-function"


BASE_STATEMENTS: FrozenSet[StatementKind] = frozenset({StatementKind.SELECT})

EXTENDED_STATEMENTS: FrozenSet[StatementKind] = frozenset(StatementKind)

# What an EXPLAIN may wrap. Checked on its own, with the full keyword scan.
EXPLAINABLE_STATEMENTS: FrozenSet[StatementKind] = frozenset(
    {StatementKind.SELECT, StatementKind.WITH, StatementKind.VALUES}
)

# Only SHOW skips the keyword scan: it names a setting and cannot change state.
KEYWORD_SCAN_EXEMPT: FrozenSet[StatementKind] = frozenset({StatementKind.SHOW})

FORBIDDEN_KEYWORDS = (
    # Writes / schema changes
    "INSERT", "UPDATE", "DELETE", "MERGE", "DROP", "ALTER", "TRUNCATE",
    "CREATE", "REPLACE", "INTO",
    # Privileges / locking
    "GRANT", "REVOKE", "REASSIGN", "LOCK",
    # Import / export
    "COPY", "IMPORT",
    # Maintenance
    "VACUUM", "ANALYZE", "REINDEX", "CLUSTER", "REFRESH", "CHECKPOINT",
    # Procedural / dynamic execution
    "CALL", "EXECUTE", "PREPARE", "DEALLOCATE", "LISTEN", "NOTIFY",
)

# Sleep/DoS, cross-database links, filesystem access, large-object export,
# backend signalling, runtime config writes, and SQL-string execution.
BLOCKED_FUNCTIONS = (
    r"pg_sleep(?:_for|_until)?",
    r"dblink\w*",
    r"pg_read_file",
    r"pg_read_binary_file",
    r"pg_ls_\w+",
    r"pg_stat_file",
    r"lo_import",
    r"lo_export",
    r"lo_from_bytea",
    r"lo_put",
    r"pg_terminate_backend",
    r"pg_cancel_backend",
    r"pg_reload_conf",
    r"pg_rotate_logfile",
    r"set_config",
    r"query_to_xml(?:_and_xmlschema)?",
    r"query_to_xmlschema",
    r"cursor_to_xml(?:schema)?",
    r"pg_(?:try_)?advisory_(?:xact_)?lock(?:_shared)?",
)

# $$...$$ or $tag$...$tag$; $1 placeholders never match (a tag cannot start with a digit)
DOLLAR_QUOTE_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")
WHITESPACE_RE = re.compile(r"\s+")
TRAILING_TERMINATOR_RE = re.compile(r";\s*$")
LEADING_KEYWORD_RE = re.compile(r"^([A-Za-z_]+)")
FORBIDDEN_KEYWORD_RE = re.compile(
    r"\b(" + "|".join(FORBIDDEN_KEYWORDS) + r")\b", re.IGNORECASE
)
# A quoted function name ("pg_sleep"(1)) is still a call.
BLOCKED_FUNCTION_RE = re.compile(
    r"\b(" + "|".join(BLOCKED_FUNCTIONS) + r")\"?\s*\(", re.IGNORECASE
)
EXPLAIN_PREFIX_RE = re.compile(
    r"^EXPLAIN\s*(?:\([^)]*\)\s*)?(?:(?:ANALYZE|ANALYSE|VERBOSE)\b\s*)*",
    re.IGNORECASE,
)


# =========================
# Verdicts
# =========================
@dataclass(frozen=True)
class Accepted:
    """The statement may run.

    `text` is the comment-stripped statement without its trailing terminator.
    It is exactly what was classified and what the executor sends.
    """

    kind: StatementKind
    text: str
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    message: str
    keyword: Optional[str] = None
    ok: ClassVar[bool] = False


Verdict = Union[Accepted, Rejected]


# =========================
# Normalization
# =========================
def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _quoted_end(sql: str, start: int) -> int:
    """Index just past the '...' or "..." starting at `start` (end of text if unterminated)."""
    quote = sql[start]
    # E'...' strings also take backslash escapes
    backslash = (
        quote == "'"
        and start > 0
        and sql[start - 1] in "eE"
        and (start < 2 or not _is_identifier_char(sql[start - 2]))
    )
    i = start + 1
    while i < len(sql):
        ch = sql[i]
        if backslash and ch == "\\":
            i += 2
            continue
        if ch == quote:
            if sql[i + 1 : i + 2] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)


def _block_comment_end(sql: str, start: int) -> Optional[int]:
    # Block comments nest in PostgreSQL
    depth, i = 0, start
    while i < len(sql) - 1:
        pair = sql[i : i + 2]
        if pair == "/*":
            depth += 1
            i += 2
        elif pair == "*/":
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    return None


def strip_comments(sql: str) -> str:
    """
    Remove line and block comments, trim, and drop one trailing terminator.

    Quoted strings, quoted identifiers and dollar-quoted bodies are copied
    through untouched, so `'a--b'` or `LIKE '%/* x */%'` keep their meaning.
    An unterminated block comment is left in place for the server to refuse.
    """
    out = []
    i = 0
    while i < len(sql):
        ch = sql[i]
        pair = sql[i : i + 2]

        if pair == "--":
            end = sql.find("\n", i)
            i = len(sql) if end == -1 else end
            continue

        if pair == "/*":
            end = _block_comment_end(sql, i)
            if end is None:
                out.append(sql[i:])
                break
            out.append(" ")
            i = end
            continue

        if ch in "'\"":
            end = _quoted_end(sql, i)
            out.append(sql[i:end])
            i = end
            continue

        if ch == "$" and (i == 0 or not _is_identifier_char(sql[i - 1])):
            match = DOLLAR_QUOTE_RE.match(sql, i)
            if match:
                close = sql.find(match.group(0), match.end())
                end = len(sql) if close == -1 else close + len(match.group(0))
                out.append(sql[i:end])
                i = end
                continue

        out.append(ch)
        i += 1

    return TRAILING_TERMINATOR_RE.sub("", "".join(out).strip()).strip()


def normalize(sql: str) -> str:
    return WHITESPACE_RE.sub(" ", strip_comments(sql)).strip()


def leading_keyword(normalized: str) -> str:
    match = LEADING_KEYWORD_RE.match(normalized)
    return match.group(1).upper() if match else ""


# =========================
# Classification
# =========================
def _disallowed(found: str, allowed: FrozenSet[StatementKind]) -> Rejected:
    names = ", ".join(kind.value for kind in StatementKind if kind in allowed)
    return Rejected(
        RejectReason.DISALLOWED_STATEMENT_TYPE,
        f"Query rejected: Only {names} statements are allowed. "
        f"Found: {found or 'unknown'}",
    )


def _check(normalized: str, allowed: FrozenSet[StatementKind]) -> Verdict:
    if not normalized:
        return Rejected(
            RejectReason.EMPTY,
            "Query cannot be empty or contain only whitespace/comments",
        )

    if ";" in normalized:
        return Rejected(
            RejectReason.MULTIPLE_STATEMENTS,
            "Query rejected: Multiple statements are not allowed.",
        )

    first = leading_keyword(normalized)
    try:
        kind = StatementKind(first)
    except ValueError:
        return _disallowed(first, allowed)
    if kind not in allowed:
        return _disallowed(first, allowed)

    if kind is StatementKind.EXPLAIN:
        inner = EXPLAIN_PREFIX_RE.sub("", normalized, count=1).strip()
        if not inner:
            return Rejected(
                RejectReason.DISALLOWED_STATEMENT_TYPE,
                "Query rejected: EXPLAIN must be followed by a SELECT, WITH or VALUES statement.",
            )
        verdict = _check(inner, EXPLAINABLE_STATEMENTS)
        if not verdict.ok:
            return verdict
    elif kind not in KEYWORD_SCAN_EXEMPT:
        match = FORBIDDEN_KEYWORD_RE.search(normalized)
        if match:
            keyword = match.group(1).upper()
            return Rejected(
                RejectReason.FORBIDDEN_KEYWORD,
                f"Query rejected: Contains forbidden keyword '{keyword}'. "
                "Data modification is not allowed.",
                keyword=keyword,
            )

    match = BLOCKED_FUNCTION_RE.search(normalized)
    if match:
        function = match.group(1).lower()
        return Rejected(
            RejectReason.BLOCKED_FUNCTION,
            f"Query rejected: Function '{function}' is not allowed.",
            keyword=function,
        )

    return Accepted(kind=kind, text=normalized)


def classify(raw_sql, allow_extended: bool = True) -> Verdict:
    """
    Classify caller SQL as an accepted read-only statement or a rejection.

    Pure and deterministic: the same text always yields the same verdict.

    Args:
        raw_sql: Caller-supplied SQL text. Anything that is not a str is rejected.
        allow_extended: Also admit SHOW, EXPLAIN, WITH and VALUES.

    Returns:
        Accepted (with the statement kind and the text to execute) or Rejected.

    Example:
        verdict = classify("SELECT * FROM users")
        if not verdict.ok:
            print(verdict.reason, verdict.message)
    """
    if not isinstance(raw_sql, str) or not raw_sql:
        return Rejected(RejectReason.INVALID_INPUT, "Query must be a non-empty string")

    allowed = EXTENDED_STATEMENTS if allow_extended else BASE_STATEMENTS
    verdict = _check(normalize(raw_sql), allowed)
    if not verdict.ok:
        return verdict

    return Accepted(kind=verdict.kind, text=strip_comments(raw_sql))
