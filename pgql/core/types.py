"""Column type normalization for PostgreSQL.

Declared schema files use the short spellings people type (``int``,
``timestamp``, ``varchar(64)``) while the database reports its own canonical
names. Both sides are mapped to one canonical spelling so they can be compared,
and the canonical spelling is mapped to a SQLAlchemy type for DDL and binds.
"""

from datetime import date, datetime
from decimal import Decimal
import re
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.types import TypeEngine, UserDefinedType

_TYPE_PATTERN = re.compile(r"^(?P<name>[a-z][a-z0-9_ ]*?)\s*(?:\((?P<args>[^)]*)\))?$")
_CAST_PATTERN = re.compile(
    r"::(?:character varying|timestamp with(?:out)? time zone|double precision|[a-z_][a-z0-9_]*)"
    r"(?:\[\])?"
)

_ALIASES: dict[str, str] = {
    "int": "INTEGER",
    "int4": "INTEGER",
    "integer": "INTEGER",
    "int2": "SMALLINT",
    "smallint": "SMALLINT",
    "int8": "BIGINT",
    "bigint": "BIGINT",
    "bool": "BOOLEAN",
    "boolean": "BOOLEAN",
    "text": "TEXT",
    "uuid": "UUID",
    "date": "DATE",
    "timestamp": "TIMESTAMP WITHOUT TIME ZONE",
    "timestamp without time zone": "TIMESTAMP WITHOUT TIME ZONE",
    "timestamptz": "TIMESTAMP WITH TIME ZONE",
    "timestamp with time zone": "TIMESTAMP WITH TIME ZONE",
    "real": "REAL",
    "float4": "REAL",
    "float8": "DOUBLE PRECISION",
    "double": "DOUBLE PRECISION",
    "double precision": "DOUBLE PRECISION",
    "numeric": "NUMERIC",
    "decimal": "NUMERIC",
    "json": "JSON",
    "jsonb": "JSONB",
    "bytea": "BYTEA",
    "varchar": "VARCHAR",
    "character varying": "VARCHAR",
    "char": "CHAR",
    "character": "CHAR",
}

TIMESTAMP_TYPES = frozenset(
    {"TIMESTAMP WITHOUT TIME ZONE", "TIMESTAMP WITH TIME ZONE"}
)
INTEGER_TYPES = frozenset({"INTEGER", "SMALLINT", "BIGINT"})
FLOAT_TYPES = frozenset({"REAL", "DOUBLE PRECISION", "NUMERIC"})
JSON_TYPES = frozenset({"JSON", "JSONB"})
STRING_TYPES = frozenset({"TEXT", "VARCHAR", "CHAR"})


def split_type(canonical: str) -> tuple[str, list[str]]:
    """Split a canonical type into its base name and modifier arguments."""
    name, _, rest = canonical.partition("(")
    args = [arg.strip() for arg in rest.rstrip(")").split(",") if arg.strip()]
    return name.strip(), args


def canonical_type(raw: str) -> str:
    """Return the canonical PostgreSQL spelling of a column type.

    Unknown types are upper-cased and otherwise left alone, so user-defined
    types still compare equal to themselves.

    Raises:
        ValueError: If ``raw`` is empty
    """
    text = " ".join(raw.strip().lower().split())
    if not text:
        raise ValueError("Column type must not be empty")

    match = _TYPE_PATTERN.match(text)
    if match is None:
        return text.upper()

    name = _ALIASES.get(match.group("name"), match.group("name").upper())
    args = match.group("args")
    if args is None:
        return name

    normalized = ", ".join(arg.strip() for arg in args.split(",") if arg.strip())
    return f"{name}({normalized})" if normalized else name


class RawType(UserDefinedType):
    """Pass-through type for spellings SQLAlchemy has no class for."""

    cache_ok = True

    def __init__(self, spec: str):
        self.spec = spec

    def get_col_spec(self, **kw: Any) -> str:
        return self.spec


def sa_type_for(canonical: str) -> TypeEngine:
    """Map a canonical type name to a SQLAlchemy type instance."""
    name, args = split_type(canonical)
    simple: dict[str, TypeEngine] = {
        "UUID": postgresql.UUID(as_uuid=False),
        "TEXT": sa.Text(),
        "INTEGER": sa.Integer(),
        "SMALLINT": sa.SmallInteger(),
        "BIGINT": sa.BigInteger(),
        "BOOLEAN": sa.Boolean(),
        "DATE": sa.Date(),
        "TIMESTAMP WITHOUT TIME ZONE": sa.DateTime(timezone=False),
        "TIMESTAMP WITH TIME ZONE": sa.DateTime(timezone=True),
        "REAL": sa.REAL(),
        "DOUBLE PRECISION": sa.Double(),
        "JSON": postgresql.JSON(),
        "JSONB": postgresql.JSONB(),
        "BYTEA": postgresql.BYTEA(),
    }
    if name in simple and not args:
        return simple[name]
    if name == "VARCHAR":
        return sa.String(int(args[0])) if args else sa.String()
    if name == "CHAR":
        return sa.CHAR(int(args[0])) if args else sa.CHAR()
    if name == "NUMERIC":
        if len(args) == 2:
            return sa.Numeric(int(args[0]), int(args[1]))
        return sa.Numeric(int(args[0])) if args else sa.Numeric()
    return RawType(canonical)


def reflected_type_name(type_: TypeEngine) -> str:
    """Canonical name for a type returned by SQLAlchemy reflection."""
    return canonical_type(type_.compile(dialect=postgresql.dialect()))


def coerce_value(canonical: str, value: Any) -> Any:
    """Convert a client-supplied value into what the driver expects for a column.

    asyncpg is strict about parameter types, so ISO strings for temporal
    columns and string encoded big integers are parsed here.
    """
    if value is None:
        return None

    name, _ = split_type(canonical)
    if name in TIMESTAMP_TYPES and isinstance(value, str):
        return datetime.fromisoformat(value)
    if name == "DATE" and isinstance(value, str):
        return date.fromisoformat(value)
    if name == "BIGINT" and isinstance(value, str):
        return int(value)
    if name == "NUMERIC" and not isinstance(value, Decimal):
        return Decimal(str(value))
    return value


def normalize_default(expr: str | None) -> str | None:
    """Normalize a server default expression for comparison.

    PostgreSQL echoes defaults back with explicit casts
    (``'x'::text``); those are stripped.
    """
    if expr is None:
        return None
    text = _CAST_PATTERN.sub("", expr.strip().lower())
    return " ".join(text.split())


def normalize_check(expr: str) -> str:
    """Normalize a check constraint expression for comparison."""
    text = " ".join(normalize_default(expr).split())  # type: ignore[union-attr]
    while text.startswith("(") and text.endswith(")") and _balanced(text[1:-1]):
        text = text[1:-1].strip()
    return text


def _balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0
