# PostgreSQL type OIDs (pg_type.oid) mapped to readable tags.
# Anything missing renders as OID(<n>); callers never get an error for it.
PG_TYPE_TAGS = {
    16: "BOOL",
    17: "BYTEA",
    18: "CHAR",
    19: "NAME",
    20: "INT8",
    21: "INT2",
    23: "INT4",
    25: "TEXT",
    26: "OID",
    114: "JSON",
    142: "XML",
    650: "CIDR",
    700: "FLOAT4",
    701: "FLOAT8",
    790: "MONEY",
    829: "MACADDR",
    869: "INET",
    1000: "BOOL[]",
    1005: "INT2[]",
    1007: "INT4[]",
    1009: "TEXT[]",
    1015: "VARCHAR[]",
    1016: "INT8[]",
    1021: "FLOAT4[]",
    1022: "FLOAT8[]",
    1042: "BPCHAR",
    1043: "VARCHAR",
    1082: "DATE",
    1083: "TIME",
    1114: "TIMESTAMP",
    1184: "TIMESTAMPTZ",
    1186: "INTERVAL",
    1266: "TIMETZ",
    1560: "BIT",
    1562: "VARBIT",
    1700: "NUMERIC",
    2249: "RECORD",
    2950: "UUID",
    3614: "TSVECTOR",
    3802: "JSONB",
}


def type_tag(oid) -> str:
    """Readable tag for a column type OID."""
    try:
        return PG_TYPE_TAGS.get(int(oid), f"OID({oid})")
    except (TypeError, ValueError):
        return f"OID({oid})"
