"""필드 타입 <-> SQL / OpenAPI 타입 매핑 테이블 (양방향 단일 기준)."""
from __future__ import annotations
import re
from typing import NamedTuple, Optional

from erd_core.model import Field, FieldType, ValidationType


class TypeRow(NamedTuple):
    field_type: FieldType
    sql_type: str
    openapi_type: str
    openapi_format: Optional[str]


# 순서가 의미 있음: 역방향 조회 시 먼저 나온 행이 우선
TYPE_TABLE: tuple[TypeRow, ...] = (
    TypeRow(FieldType.STRING, "VARCHAR(255)", "string", None),
    TypeRow(FieldType.LONG, "BIGINT", "integer", "int64"),
    TypeRow(FieldType.INTEGER, "INTEGER", "integer", "int32"),
    TypeRow(FieldType.DOUBLE, "DOUBLE PRECISION", "number", "double"),
    TypeRow(FieldType.FLOAT, "REAL", "number", "float"),
    TypeRow(FieldType.BIG_DECIMAL, "DECIMAL(19,2)", "number", "decimal"),
    TypeRow(FieldType.BOOLEAN, "BOOLEAN", "boolean", None),
    TypeRow(FieldType.LOCAL_DATE, "DATE", "string", "date"),
    TypeRow(FieldType.LOCAL_DATE_TIME, "TIMESTAMP", "string", "date-time"),
    TypeRow(FieldType.LOCAL_TIME, "TIME", "string", "time"),
    TypeRow(FieldType.INSTANT, "TIMESTAMP WITH TIME ZONE", "string", "date-time"),
    TypeRow(FieldType.UUID, "UUID", "string", "uuid"),
    TypeRow(FieldType.BYTES, "BYTEA", "string", "binary"),
)

FIELD_TO_SQL: dict[FieldType, str] = {r.field_type: r.sql_type for r in TYPE_TABLE}

# 포맷 우선 매칭. 테이블에 없는 별칭 포맷만 여기서 보충한다.
FORMAT_TO_FIELD: dict[str, FieldType] = {}
for _row in TYPE_TABLE:
    if _row.openapi_format and _row.openapi_format not in FORMAT_TO_FIELD:
        FORMAT_TO_FIELD[_row.openapi_format] = _row.field_type
FORMAT_TO_FIELD["byte"] = FieldType.BYTES

# 포맷이 없을 때의 기본 타입
BARE_TYPE_TO_FIELD: dict[str, FieldType] = {
    "string": FieldType.STRING,
    "integer": FieldType.INTEGER,
    "number": FieldType.DOUBLE,
    "boolean": FieldType.BOOLEAN,
}

SQL_TO_FIELD: dict[str, FieldType] = {
    re.sub(r"\(.*\)", "", r.sql_type).strip(): r.field_type for r in reversed(TYPE_TABLE)
}
SQL_TO_FIELD.update({
    "VARCHAR": FieldType.STRING,
    "CHARACTER VARYING": FieldType.STRING,
    "CHAR": FieldType.STRING,
    "CHARACTER": FieldType.STRING,
    "TEXT": FieldType.STRING,
    "BIGSERIAL": FieldType.LONG,
    "INT": FieldType.INTEGER,
    "INT4": FieldType.INTEGER,
    "INT8": FieldType.LONG,
    "SERIAL": FieldType.INTEGER,
    "SMALLINT": FieldType.INTEGER,
    "DOUBLE": FieldType.DOUBLE,
    "FLOAT": FieldType.FLOAT,
    "NUMERIC": FieldType.BIG_DECIMAL,
    "MONEY": FieldType.BIG_DECIMAL,
    "BOOL": FieldType.BOOLEAN,
    "TIMESTAMP WITHOUT TIME ZONE": FieldType.LOCAL_DATE_TIME,
    "TIMESTAMPTZ": FieldType.INSTANT,
    "TIME WITHOUT TIME ZONE": FieldType.LOCAL_TIME,
    "BLOB": FieldType.BYTES,
})

_SIZE_MAX_RE = re.compile(r"max\s*=\s*(\d+)")


def sql_type_for(field: Field) -> str:
    """필드의 DDL 타입. String + Size(max=N) 이면 VARCHAR(N)."""
    base = FIELD_TO_SQL.get(field.type, "VARCHAR(255)")
    if field.type is FieldType.STRING:
        for rule in field.validations:
            if rule.type is ValidationType.SIZE and rule.value is not None:
                m = _SIZE_MAX_RE.search(str(rule.value))
                if m:
                    return f"VARCHAR({m.group(1)})"
    return base


def field_type_from_openapi(type_: Optional[str], format_: Optional[str] = None) -> FieldType:
    # 문자열이 아닌 type/format 은 String 으로 본다
    if isinstance(format_, str) and format_:
        hit = FORMAT_TO_FIELD.get(format_.lower())
        if hit is not None:
            return hit
    if isinstance(type_, str) and type_:
        return BARE_TYPE_TO_FIELD.get(type_.lower(), FieldType.STRING)
    return FieldType.STRING


def openapi_type_for(field_type: FieldType) -> tuple[str, Optional[str]]:
    for row in TYPE_TABLE:
        if row.field_type is field_type:
            return row.openapi_type, row.openapi_format
    return "string", None


def field_type_from_sql(sql_type: str) -> FieldType:
    base = re.sub(r"\(.*?\)", "", sql_type).strip().upper()
    base = re.sub(r"\s+", " ", base)
    hit = SQL_TO_FIELD.get(base)
    if hit is not None:
        return hit
    # "DOUBLE PRECISION NOT NULL" 같이 꼬리가 붙은 경우 부분 매칭
    for key in sorted(SQL_TO_FIELD, key=len, reverse=True):
        if base.startswith(key):
            return SQL_TO_FIELD[key]
    return FieldType.STRING


def sql_type_length(sql_type: str) -> Optional[int]:
    m = re.search(r"\(\s*(\d+)", sql_type)
    return int(m.group(1)) if m else None
