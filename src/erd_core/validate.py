"""모델 스냅샷 교차 검증: 엔티티 id 중복, 테이블명 중복, 컬럼명 충돌, 끊어진 관계."""
from __future__ import annotations
from typing import Sequence

from erd_core.diagnostics import Diagnostic, DiagnosticCode
from erd_core.model import RESERVED_COLUMNS, Entity, Relation


def validate_model(entities: Sequence[Entity], relations: Sequence[Relation]) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []

    ids: set[str] = set()
    tables: dict[str, str] = {}
    for i, e in enumerate(entities):
        if e.id in ids:
            diagnostics.append(Diagnostic(
                code=DiagnosticCode.DUPLICATE_ENTITY_ID,
                message=f"Entity id '{e.id}' is used more than once",
                path=f"entities[{i}].id",
            ))
        ids.add(e.id)

        table = e.resolved_table_name()
        if table in tables:
            diagnostics.append(Diagnostic(
                code=DiagnosticCode.DUPLICATE_TABLE_NAME,
                message=f"Entities '{tables[table]}' and '{e.name}' both map to table '{table}'",
                path=f"entities[{i}].tableName",
            ))
        else:
            tables[table] = e.name

    diagnostics.extend(find_duplicate_columns(entities, relations))
    diagnostics.extend(find_dangling_relations(entities, relations))
    return diagnostics


def find_duplicate_columns(entities: Sequence[Entity], relations: Sequence[Relation]) -> list[Diagnostic]:
    """
    엔티티 테이블 하나에 같은 이름의 컬럼이 두 번 나오는지 검사한다.
    - 대상: 필드 컬럼, 소유 관계의 FK 컬럼, 고정 PK/감사 컬럼
    - PostgreSQL 식별자는 대소문자를 구분하지 않으므로 소문자로 비교
    """
    by_id = {e.id: e for e in entities}
    out: list[Diagnostic] = []
    for i, e in enumerate(entities):
        owners = {c: "a generated base column" for c in RESERVED_COLUMNS}

        for j, f in enumerate(e.fields):
            col = f.resolved_column_name().lower()
            if col in owners:
                out.append(Diagnostic(
                    code=DiagnosticCode.DUPLICATE_COLUMN,
                    message=f"Column '{col}' of field '{f.name}' in '{e.name}' clashes with {owners[col]}",
                    path=f"entities[{i}].fields[{j}].columnName",
                ))
            else:
                owners[col] = f"field '{f.name}'"

        for k, r in enumerate(relations):
            if r.source_entity_id != e.id or not r.type.owns_foreign_key:
                continue
            target = by_id.get(r.target_entity_id)
            if target is None:
                continue
            col = r.fk_column(target).lower()
            if col in owners:
                out.append(Diagnostic(
                    code=DiagnosticCode.DUPLICATE_COLUMN,
                    message=f"Foreign key column '{col}' of relation '{r.id}' in '{e.name}' clashes with {owners[col]}",
                    path=f"relations[{k}].foreignKey.columnName",
                ))
            else:
                owners[col] = f"the foreign key of relation '{r.id}'"
    return out


def find_dangling_relations(entities: Sequence[Entity], relations: Sequence[Relation]) -> list[Diagnostic]:
    ids = {e.id for e in entities}
    out: list[Diagnostic] = []
    for i, r in enumerate(relations):
        for attr, entity_id in (("sourceEntityId", r.source_entity_id), ("targetEntityId", r.target_entity_id)):
            if entity_id not in ids:
                out.append(Diagnostic(
                    code=DiagnosticCode.DANGLING_RELATION,
                    message=f"Relation '{r.id}' references unknown entity '{entity_id}'",
                    path=f"relations[{i}].{attr}",
                ))
    return out
