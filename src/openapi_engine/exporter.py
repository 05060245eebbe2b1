"""ERD 모델 → OpenAPI 3 문서 (components.schemas 만)."""
from __future__ import annotations
import json
import re
from typing import Any, Sequence

import yaml

from erd_core.model import Entity, Field, FieldType, Relation, ValidationType
from erd_core.type_mapping import openapi_type_for

OPENAPI_VERSION = "3.0.3"

_BOUND_RE = re.compile(r"(min|max)\s*=\s*(\d+)")


def _number(value: Any) -> Any:
    if isinstance(value, (int, float)):
        return value
    try:
        f = float(str(value))
    except ValueError:
        return value
    return int(f) if f.is_integer() else f


def field_schema(f: Field) -> dict[str, Any]:
    type_, format_ = openapi_type_for(f.type)
    schema: dict[str, Any] = {"type": type_}
    if format_:
        schema["format"] = format_
    if f.nullable:
        schema["nullable"] = True
    if f.description:
        schema["description"] = f.description

    for rule in f.validations:
        if rule.type is ValidationType.SIZE and rule.value is not None:
            for kind, n in _BOUND_RE.findall(str(rule.value)):
                schema["minLength" if kind == "min" else "maxLength"] = int(n)
        elif rule.type is ValidationType.MIN and rule.value is not None:
            schema["minimum"] = _number(rule.value)
        elif rule.type is ValidationType.MAX and rule.value is not None:
            schema["maximum"] = _number(rule.value)
        elif rule.type is ValidationType.PATTERN and rule.value:
            schema["pattern"] = str(rule.value)
        elif rule.type is ValidationType.EMAIL and f.type is FieldType.STRING:
            schema["format"] = "email"
    return schema


def _is_required(f: Field) -> bool:
    return not f.nullable or f.has_rule(ValidationType.NOT_NULL, ValidationType.NOT_BLANK)


def entity_schema(entity: Entity, relations: Sequence[Relation], by_id: dict[str, Entity]) -> dict[str, Any]:
    props: dict[str, Any] = {"id": {"type": "integer", "format": "int64", "readOnly": True}}
    required: list[str] = []
    for f in entity.fields:
        props[f.name] = field_schema(f)
        if _is_required(f):
            required.append(f.name)

    for r in relations:
        if r.source_entity_id != entity.id or r.target_entity_id not in by_id:
            continue
        target = by_id[r.target_entity_id]
        ref = {"$ref": f"#/components/schemas/{target.name}"}
        if r.type.owns_foreign_key:
            name = r.source_field_name or target.name[:1].lower() + target.name[1:]
            props[name] = ref
            if not r.foreign_key.nullable:
                required.append(name)
        else:
            name = r.source_field_name or target.resolved_table_name()
            props[name] = {"type": "array", "items": ref}

    schema: dict[str, Any] = {"type": "object"}
    if entity.description:
        schema["description"] = entity.description
    schema["properties"] = props
    if required:
        schema["required"] = required
    return schema


def export_openapi(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
    project_name: str = "API Project",
    *,
    version: str = "1.0.0",
) -> dict[str, Any]:
    by_id = {e.id: e for e in entities}
    return {
        "openapi": OPENAPI_VERSION,
        "info": {"title": project_name, "version": version},
        "paths": {},
        "components": {
            "schemas": {e.name: entity_schema(e, relations, by_id) for e in entities},
        },
    }


def dump_document(doc: dict[str, Any], fmt: str = "json") -> str:
    if fmt.lower() in ("yaml", "yml"):
        return yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)
    return json.dumps(doc, ensure_ascii=False, indent=2) + "\n"
