"""SQL DDL 스크립트 -> ERD 모델 (CREATE TABLE / ALTER TABLE ... FOREIGN KEY)."""
from __future__ import annotations
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from erd_core.diagnostics import DiagnosticCode, ImportResult
from erd_core.model import (
    Entity,
    FKAction,
    Field,
    FieldType,
    ForeignKeyConfig,
    JoinTableConfig,
    Relation,
    RelationType,
    ValidationRule,
    ValidationType,
)
from erd_core.naming import singularize, to_camel_case, to_pascal_case
from erd_core.type_mapping import field_type_from_sql, sql_type_length

logger = logging.getLogger(__name__)

# 합성 PK + 감사 컬럼은 엔티티 필드로 가져오지 않는다
BASE_COLUMNS = {
    "id",
    "status",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
    "version",
    "deleted_at",
    "is_deleted",
}

_IDENT = r"[\"'`]?(\w+)[\"'`]?"
CREATE_TABLE_RE = re.compile(
    rf"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:\w+\.)?{_IDENT}\s*\((.*)\)",
    re.IGNORECASE | re.DOTALL,
)
ALTER_TABLE_RE = re.compile(rf"ALTER\s+TABLE\s+(?:ONLY\s+)?(?:\w+\.)?{_IDENT}", re.IGNORECASE)
COLUMN_RE = re.compile(rf"^{_IDENT}\s+([A-Z][A-Z0-9\s]*?(?:\([^)]*\))?)(?=\s+(?:NOT|NULL|UNIQUE|PRIMARY|DEFAULT|REFERENCES|CHECK|CONSTRAINT)\b|\s*$)", re.IGNORECASE)
FK_RE = re.compile(
    rf"FOREIGN\s+KEY\s*\(([^)]+)\)\s*REFERENCES\s+(?:\w+\.)?{_IDENT}\s*\(([^)]+)\)",
    re.IGNORECASE,
)
INLINE_REF_RE = re.compile(rf"\bREFERENCES\s+(?:\w+\.)?{_IDENT}\s*\(([^)]+)\)", re.IGNORECASE)
PK_RE = re.compile(r"PRIMARY\s+KEY\s*\(([^)]+)\)", re.IGNORECASE)
DEFAULT_RE = re.compile(r"\bDEFAULT\s+('(?:[^']|'')*'|[^\s,]+)", re.IGNORECASE)
ACTION_RE = r"(CASCADE|SET\s+NULL|RESTRICT|NO\s+ACTION)"
ON_DELETE_RE = re.compile(rf"\bON\s+DELETE\s+{ACTION_RE}", re.IGNORECASE)
ON_UPDATE_RE = re.compile(rf"\bON\s+UPDATE\s+{ACTION_RE}", re.IGNORECASE)
SKIP_PART_RE = re.compile(r"^(?:CONSTRAINT\s+\w+\s+)?(?:UNIQUE|CHECK|EXCLUDE|INDEX|KEY)\b", re.IGNORECASE)

IGNORED_STATEMENT_RE = re.compile(
    r"^\s*(CREATE\s+(UNIQUE\s+)?INDEX|COMMENT\s+ON|SET\s|BEGIN|COMMIT|DROP\s)", re.IGNORECASE
)


@dataclass
class ParsedForeignKey:
    columns: List[str]
    ref_table: str
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass
class ParsedColumn:
    name: str
    sql_type: str
    nullable: bool = True
    unique: bool = False
    primary_key: bool = False
    default: Optional[str] = None


@dataclass
class ParsedTable:
    name: str
    columns: List[ParsedColumn] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    foreign_keys: List[ParsedForeignKey] = field(default_factory=list)

    def fk_columns(self) -> set[str]:
        # 단일 컬럼 FK 만 관계가 된다
        return {fk.columns[0].lower() for fk in self.foreign_keys if len(fk.columns) == 1}

    def column(self, name: str) -> Optional[ParsedColumn]:
        return next((c for c in self.columns if c.name.lower() == name.lower()), None)


def _unquote_list(s: str) -> list[str]:
    return [c.strip().strip("\"'`") for c in s.split(",") if c.strip()]


def _action(regex: re.Pattern, text: str) -> Optional[str]:
    m = regex.search(text)
    return re.sub(r"\s+", "_", m.group(1).upper()) if m else None


def strip_comments(sql: str) -> str:
    """따옴표 밖의 -- 줄 주석과 /* */ 블록 주석 제거."""
    out: list[str] = []
    i, n = 0, len(sql)
    in_quote = False
    while i < n:
        ch = sql[i]
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote and sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue
        elif not in_quote and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def split_statements(sql: str) -> list[str]:
    """따옴표 밖의 세미콜론 기준으로 문장 분리 (빈 문장 제외)."""
    statements: list[str] = []
    current: list[str] = []
    in_quote = False
    for ch in sql:
        if ch == "'":
            in_quote = not in_quote
        elif ch == ";" and not in_quote:
            stmt = "".join(current).strip()
            if stmt:
                statements.append(stmt)
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        statements.append(tail)
    return statements


def split_top_level(body: str) -> list[str]:
    """괄호/따옴표 밖의 쉼표 기준으로 분리."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_quote = False
    for ch in body:
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth = max(0, depth - 1)
            elif ch == "," and depth == 0:
                parts.append("".join(current).strip())
                current = []
                continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def parse_column(part: str) -> Optional[tuple[ParsedColumn, Optional[ParsedForeignKey]]]:
    m = COLUMN_RE.match(part)
    if not m:
        return None
    col = ParsedColumn(name=m.group(1), sql_type=re.sub(r"\s+", " ", m.group(2).strip()))
    rest = part[m.end():]
    if re.search(r"\bNOT\s+NULL\b", rest, re.IGNORECASE):
        col.nullable = False
    if re.search(r"\bUNIQUE\b", rest, re.IGNORECASE):
        col.unique = True
    if re.search(r"\bPRIMARY\s+KEY\b", rest, re.IGNORECASE):
        col.primary_key = True
        col.nullable = False
    d = DEFAULT_RE.search(rest)
    if d:
        col.default = d.group(1)

    fk = None
    ref = INLINE_REF_RE.search(rest)
    if ref:
        fk = ParsedForeignKey(
            columns=[col.name],
            ref_table=ref.group(1),
            on_delete=_action(ON_DELETE_RE, rest),
            on_update=_action(ON_UPDATE_RE, rest),
        )
    return col, fk


def parse_create_table(stmt: str) -> Optional[ParsedTable]:
    m = CREATE_TABLE_RE.search(stmt)
    if not m:
        return None
    table = ParsedTable(name=m.group(1))
    for part in split_top_level(m.group(2)):
        if re.match(r"^(?:CONSTRAINT\s+\w+\s+)?PRIMARY\s+KEY", part, re.IGNORECASE):
            pk = PK_RE.search(part)
            if pk:
                table.primary_key = _unquote_list(pk.group(1))
            continue
        if re.match(r"^(?:CONSTRAINT\s+\w+\s+)?FOREIGN\s+KEY", part, re.IGNORECASE):
            fk = FK_RE.search(part)
            if fk:
                table.foreign_keys.append(ParsedForeignKey(
                    columns=_unquote_list(fk.group(1)),
                    ref_table=fk.group(2),
                    on_delete=_action(ON_DELETE_RE, part),
                    on_update=_action(ON_UPDATE_RE, part),
                ))
            continue
        if SKIP_PART_RE.match(part):
            continue
        parsed = parse_column(part)
        if parsed is None:
            logger.debug("Unparsed column definition in %s: %s", table.name, part)
            continue
        col, inline_fk = parsed
        table.columns.append(col)
        if inline_fk:
            table.foreign_keys.append(inline_fk)
    for name in table.primary_key:
        col = table.column(name)
        if col:
            col.nullable = False
    return table


def parse_alter_table(stmt: str, tables: dict[str, ParsedTable]) -> bool:
    m = ALTER_TABLE_RE.search(stmt)
    fk = FK_RE.search(stmt)
    if not m or not fk:
        return False
    table = tables.get(m.group(1).lower())
    if table is None:
        return False
    table.foreign_keys.append(ParsedForeignKey(
        columns=_unquote_list(fk.group(1)),
        ref_table=fk.group(2),
        on_delete=_action(ON_DELETE_RE, stmt),
        on_update=_action(ON_UPDATE_RE, stmt),
    ))
    return True


def single_column_fks(table: ParsedTable) -> list[ParsedForeignKey]:
    return [fk for fk in table.foreign_keys if len(fk.columns) == 1]


def is_junction_table(table: ParsedTable) -> bool:
    # 서로 다른 단일 컬럼 FK 가 둘 이상 (복합 FK 는 세지 않는다)
    fk_cols = table.fk_columns()
    if len(fk_cols) < 2:
        return False
    pk = {c.lower() for c in table.primary_key}
    # FK 컬럼과 PK 컬럼만 있어야 한다 (감사 컬럼이 있으면 엔티티 테이블)
    return all(c.name.lower() in fk_cols or c.name.lower() in pk or c.primary_key for c in table.columns)


def field_from_column(col: ParsedColumn, id_factory: Callable[[], str]) -> Field:
    field_type = field_type_from_sql(col.sql_type)
    rules: list[ValidationRule] = []
    if not col.nullable:
        rules.append(ValidationRule(type=ValidationType.NOT_NULL))
    length = sql_type_length(col.sql_type)
    if field_type is FieldType.STRING and length and length != 255:
        rules.append(ValidationRule(type=ValidationType.SIZE, value=f"max={length}"))
    return Field(
        id=id_factory(),
        name=to_camel_case(col.name),
        column_name=col.name,
        type=field_type,
        nullable=col.nullable,
        unique=col.unique,
        validations=rules,
        default_value=col.default,
    )


def _fk_action(value: Optional[str]) -> FKAction:
    return FKAction(value) if value in FKAction.__members__ else FKAction.NO_ACTION


def _default_id() -> str:
    return uuid.uuid4().hex


def parse_sql(sql: str, *, id_factory: Callable[[], str] = _default_id) -> ImportResult:
    result = ImportResult()
    tables: dict[str, ParsedTable] = {}
    statements = split_statements(strip_comments(sql))

    # 1) CREATE TABLE
    for stmt in statements:
        if re.match(r"^CREATE\s+TABLE", stmt, re.IGNORECASE):
            table = parse_create_table(stmt)
            if table is None:
                result.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Could not parse statement: {stmt[:60]}")
                continue
            if table.name.lower() in tables:
                result.warn(DiagnosticCode.NAME_COLLISION, f"Table '{table.name}' is defined more than once", table.name)
            tables[table.name.lower()] = table

    # 2) ALTER TABLE ... FOREIGN KEY
    for stmt in statements:
        if re.match(r"^ALTER\s+TABLE", stmt, re.IGNORECASE):
            if not parse_alter_table(stmt, tables):
                result.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Ignored ALTER TABLE statement: {stmt[:60]}")
        elif not re.match(r"^CREATE\s+TABLE", stmt, re.IGNORECASE) and not IGNORED_STATEMENT_RE.match(stmt):
            result.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Ignored statement: {stmt[:60]}")

    if not tables:
        result.warn(DiagnosticCode.EMPTY_SCHEMA, "No CREATE TABLE statements found")
        return result

    junctions = {name for name, t in tables.items() if is_junction_table(t)}
    entity_by_table: dict[str, Entity] = {}

    for key, table in tables.items():
        if key in junctions:
            continue
        fk_cols = table.fk_columns()
        fields = [
            field_from_column(c, id_factory)
            for c in table.columns
            if c.name.lower() not in BASE_COLUMNS and not c.primary_key and c.name.lower() not in fk_cols
        ]
        entity = Entity(
            id=id_factory(),
            name=to_pascal_case(singularize(table.name)),
            table_name=table.name,
            fields=fields,
        )
        entity_by_table[key] = entity
        result.entities.append(entity)

    for key, table in tables.items():
        if key in junctions:
            continue
        source = entity_by_table[key]
        for fk in table.foreign_keys:
            if len(fk.columns) != 1:
                result.warn(
                    DiagnosticCode.UNSUPPORTED_FEATURE,
                    f"Composite foreign key {table.name}({', '.join(fk.columns)}) is kept as plain columns",
                    table.name,
                )
                continue
            target = entity_by_table.get(fk.ref_table.lower())
            if target is None:
                result.warn(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Foreign key {table.name}({', '.join(fk.columns)}) references unknown table '{fk.ref_table}'",
                    table.name,
                )
                continue
            col = table.column(fk.columns[0])
            result.relations.append(Relation(
                id=id_factory(),
                type=RelationType.MANY_TO_ONE,
                source_entity_id=source.id,
                target_entity_id=target.id,
                source_field_name=to_camel_case(target.name),
                foreign_key=ForeignKeyConfig(
                    column_name=fk.columns[0],
                    nullable=col.nullable if col else True,
                    on_delete=_fk_action(fk.on_delete),
                    on_update=_fk_action(fk.on_update),
                ),
            ))

    for key in junctions:
        table = tables[key]
        first, *rest = single_column_fks(table)
        second = next(fk for fk in rest if fk.columns[0].lower() != first.columns[0].lower())
        source = entity_by_table.get(first.ref_table.lower())
        target = entity_by_table.get(second.ref_table.lower())
        if source is None or target is None:
            result.warn(
                DiagnosticCode.UNRESOLVED_REFERENCE,
                f"Join table '{table.name}' references a table that is not an entity",
                table.name,
            )
            continue
        result.relations.append(Relation(
            id=id_factory(),
            type=RelationType.MANY_TO_MANY,
            source_entity_id=source.id,
            target_entity_id=target.id,
            source_field_name=to_camel_case(target.resolved_table_name()),
            foreign_key=ForeignKeyConfig(
                column_name=first.columns[0],
                nullable=False,
                on_delete=FKAction.CASCADE,
                on_update=FKAction.CASCADE,
            ),
            join_table=JoinTableConfig(
                name=table.name,
                join_column=first.columns[0],
                inverse_join_column=second.columns[0],
            ),
        ))

    logger.debug("Parsed %d tables (%d join tables)", len(tables), len(junctions))
    return result
