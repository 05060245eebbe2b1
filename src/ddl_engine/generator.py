"""ERD 모델 -> PostgreSQL DDL 스크립트 생성."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from erd_core.diagnostics import DiagnosticCode
from erd_core.errors import DanglingRelationError, ModelValidationError
from erd_core.model import Entity, Field, Relation, RelationType, ValidationType
from erd_core.type_mapping import sql_type_for
from erd_core.validate import validate_model

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

BANNER_RULE = "-- ==========================================="

PRIMARY_KEY_COLUMN = "id BIGSERIAL PRIMARY KEY"

AUDIT_COLUMNS = (
    "status VARCHAR(20) DEFAULT 'ACTIVE'",
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
    "updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
    "created_by VARCHAR(100)",
    "updated_by VARCHAR(100)",
    "version BIGINT DEFAULT 0",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _ForeignKey:
    table: str
    column: str
    target_table: str
    nullable: bool
    on_delete: str
    on_update: str


def col_settings(f: Field) -> str:
    settings = []
    if not f.nullable or f.has_rule(ValidationType.NOT_NULL, ValidationType.NOT_BLANK):
        settings.append("NOT NULL")
    if f.unique:
        settings.append("UNIQUE")
    if f.default_value is not None and f.default_value != "":
        settings.append(f"DEFAULT {f.default_value}")
    return f" {' '.join(settings)}" if settings else ""


def column_definition(f: Field) -> str:
    return f"{f.resolved_column_name()} {sql_type_for(f)}{col_settings(f)}"


def has_foreign_key(entity: Entity, relations: Sequence[Relation]) -> bool:
    return any(r.source_entity_id == entity.id and r.type.owns_foreign_key for r in relations)


def partition_entities(entities: Sequence[Entity], relations: Sequence[Relation]) -> list[Entity]:
    """FK 없는 엔티티 먼저, FK 있는 엔티티 나중 (각 그룹 내 입력 순서 유지)."""
    without_fk = [e for e in entities if not has_foreign_key(e, relations)]
    with_fk = [e for e in entities if has_foreign_key(e, relations)]
    return without_fk + with_fk


def _foreign_keys_of(entity: Entity, relations: Sequence[Relation], by_id: dict[str, Entity]) -> list[_ForeignKey]:
    table = entity.resolved_table_name()
    fks: list[_ForeignKey] = []
    for r in relations:
        if r.source_entity_id != entity.id or not r.type.owns_foreign_key:
            continue
        target = by_id.get(r.target_entity_id)
        if target is None:
            continue
        fks.append(_ForeignKey(
            table=table,
            column=r.fk_column(target),
            target_table=target.resolved_table_name(),
            nullable=r.foreign_key.nullable,
            on_delete=r.foreign_key.on_delete.sql,
            on_update=r.foreign_key.on_update.sql,
        ))
    return fks


def create_table(entity: Entity, fks: Sequence[_ForeignKey]) -> str:
    lines = [f"-- Entity: {entity.name}"]
    if entity.description:
        lines.append(f"-- {entity.description}")
    lines.append(f"CREATE TABLE {entity.resolved_table_name()} (")

    columns = [PRIMARY_KEY_COLUMN]
    columns += [column_definition(f) for f in entity.fields]
    columns += [f"{fk.column} BIGINT{'' if fk.nullable else ' NOT NULL'}" for fk in fks]
    columns += list(AUDIT_COLUMNS)

    lines.append(",\n".join(f"    {c}" for c in columns))
    lines.append(");")
    return "\n".join(lines)


def foreign_key_statements(fk: _ForeignKey) -> str:
    return "\n".join([
        f"ALTER TABLE {fk.table} ADD CONSTRAINT fk_{fk.table}_{fk.column} "
        f"FOREIGN KEY ({fk.column}) REFERENCES {fk.target_table}(id) "
        f"ON DELETE {fk.on_delete} ON UPDATE {fk.on_update};",
        f"CREATE INDEX idx_{fk.table}_{fk.column} ON {fk.table}({fk.column});",
    ])


def create_join_table(relation: Relation, source: Entity, target: Entity) -> str:
    jt = relation.join_table
    return "\n".join([
        f"-- Join table: {source.name} <-> {target.name}",
        f"CREATE TABLE {jt.name} (",
        f"    {jt.join_column} BIGINT NOT NULL,",
        f"    {jt.inverse_join_column} BIGINT NOT NULL,",
        f"    PRIMARY KEY ({jt.join_column}, {jt.inverse_join_column})",
        ");",
    ])


def join_table_constraints(relation: Relation, source: Entity, target: Entity) -> str:
    jt = relation.join_table
    lines = []
    for col, ref in ((jt.join_column, source), (jt.inverse_join_column, target)):
        lines.append(
            f"ALTER TABLE {jt.name} ADD CONSTRAINT fk_{jt.name}_{col} "
            f"FOREIGN KEY ({col}) REFERENCES {ref.resolved_table_name()}(id) ON DELETE CASCADE;"
        )
    for col in (jt.join_column, jt.inverse_join_column):
        lines.append(f"CREATE INDEX idx_{jt.name}_{col} ON {jt.name}({col});")
    return "\n".join(lines)


def banner(project_name: str, generated_at: datetime, title: str) -> list[str]:
    return [
        BANNER_RULE,
        f"-- Generated by {title}",
        f"-- Project: {project_name}",
        f"-- Date: {generated_at.isoformat()}",
        BANNER_RULE,
        "",
    ]


def _check_model(entities: Sequence[Entity], relations: Sequence[Relation], strict: bool) -> list[Relation]:
    diagnostics = validate_model(entities, relations)
    dangling = [d for d in diagnostics if d.code is DiagnosticCode.DANGLING_RELATION]
    others = [d for d in diagnostics if d.code is not DiagnosticCode.DANGLING_RELATION]
    if others:
        raise ModelValidationError(others)
    if not dangling:
        return list(relations)
    if strict:
        raise DanglingRelationError(dangling)

    ids = {e.id for e in entities}
    kept = []
    for r in relations:
        if r.source_entity_id in ids and r.target_entity_id in ids:
            kept.append(r)
        else:
            logger.warning("Skipping relation %s: %s -> %s not in model", r.id, r.source_entity_id, r.target_entity_id)
    return kept


def generate_sql(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
    project_name: str = "API Project",
    *,
    clock: Clock = utc_now,
    strict: bool = True,
    banner_title: str = "ERD Schema Engine",
) -> str:
    """
    DDL 스크립트 생성.
    - 모든 CREATE TABLE 이후에 FK 제약(ALTER TABLE)과 인덱스를 출력한다.
    - strict=True 이면 끊어진 관계에서 DanglingRelationError, 아니면 경고 후 건너뜀.
    """
    relations = _check_model(entities, relations, strict)
    by_id = {e.id: e for e in entities}
    ordered = partition_entities(entities, relations)
    join_relations = [r for r in relations if r.type is RelationType.MANY_TO_MANY and r.join_table]

    table_sections: list[str] = []
    constraint_sections: list[str] = []

    for entity in ordered:
        fks = _foreign_keys_of(entity, relations, by_id)
        table_sections.append(create_table(entity, fks))
        if fks:
            constraint_sections.append(
                f"-- Foreign keys: {entity.name}\n" + "\n".join(foreign_key_statements(fk) for fk in fks)
            )

    for r in join_relations:
        source, target = by_id[r.source_entity_id], by_id[r.target_entity_id]
        table_sections.append(create_join_table(r, source, target))
        constraint_sections.append(join_table_constraints(r, source, target))

    logger.debug(
        "Generated DDL for %d entities (%d join tables, %d constraint groups)",
        len(ordered), len(join_relations), len(constraint_sections),
    )

    lines = banner(project_name, clock(), banner_title)
    for section in table_sections + constraint_sections:
        lines.append(section)
        lines.append("")
    return "\n".join(lines)


def write_ddl(sql: str, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(sql, encoding="utf-8")
    return out_path
