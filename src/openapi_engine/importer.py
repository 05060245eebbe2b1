"""OpenAPI 3 / Swagger 2 문서 → ERD 엔티티 + 관계 (2-pass)."""
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from erd_core.diagnostics import Diagnostic, DiagnosticCode, ImportResult
from erd_core.model import (
    RESERVED_COLUMNS,
    Entity,
    Field,
    FieldType,
    ForeignKeyConfig,
    Relation,
    RelationType,
    ValidationRule,
    ValidationType,
)
from erd_core.naming import camel_to_snake, sanitize_name, singularize, to_camel_case, to_pascal_case
from erd_core.type_mapping import field_type_from_openapi
from openapi_engine.loader import load_document

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def _default_id() -> str:
    return uuid.uuid4().hex


@dataclass
class _PendingRef:
    owner: str
    prop: str
    target: str
    relation: RelationType
    nullable: bool
    path: str


def ref_name(ref: str) -> str:
    """'#/components/schemas/User' -> 'User'"""
    return str(ref).rsplit("/", 1)[-1]


def _schemas_of(doc: dict) -> tuple[dict, str]:
    if "swagger" in doc and "openapi" not in doc:
        return doc.get("definitions") or {}, "definitions"
    comps = doc.get("components") or {}
    return (comps.get("schemas") if isinstance(comps, dict) else None) or {}, "components.schemas"


def _resolve_local(ref: str, schemas: dict) -> Optional[dict]:
    target = schemas.get(ref_name(ref))
    return target if isinstance(target, dict) else None


def merged_object(schema: dict, schemas: dict, _seen: Optional[set[str]] = None) -> tuple[dict, list[str]]:
    """allOf(로컬 $ref 포함)를 펼쳐 properties/required 를 합친다."""
    seen = _seen if _seen is not None else set()
    props: dict[str, Any] = {}
    required: list[str] = []
    for member in schema.get("allOf") or []:
        if not isinstance(member, dict):
            continue
        if "$ref" in member:
            name = ref_name(member["$ref"])
            target = _resolve_local(member["$ref"], schemas)
            if target is None or name in seen:
                continue
            seen.add(name)
            member = target
        sub_props, sub_required = merged_object(member, schemas, seen)
        props.update(sub_props)
        required += sub_required
    own = schema.get("properties")
    if isinstance(own, dict):
        props.update({str(k): v for k, v in own.items()})
    own_required = schema.get("required")
    if isinstance(own_required, list):
        required += [r for r in own_required if isinstance(r, str)]
    return props, required


def is_object_schema(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    type_ = schema.get("type")
    if isinstance(type_, list):
        type_ = next((t for t in type_ if t != "null"), None)
    if type_ not in (None, "object"):
        return False
    return type_ == "object" or "properties" in schema or "allOf" in schema


def _validation_rules(prop: dict, nullable: bool, field_type: FieldType) -> list[ValidationRule]:
    rules: list[ValidationRule] = []
    if not nullable:
        rules.append(ValidationRule(type=ValidationType.NOT_NULL))
    bounds = []
    if "minLength" in prop:
        bounds.append(f"min={prop['minLength']}")
    if "maxLength" in prop:
        bounds.append(f"max={prop['maxLength']}")
    if bounds:
        rules.append(ValidationRule(type=ValidationType.SIZE, value=", ".join(bounds)))
    if isinstance(prop.get("minimum"), (int, float)):
        rules.append(ValidationRule(type=ValidationType.MIN, value=prop["minimum"]))
    if isinstance(prop.get("maximum"), (int, float)):
        rules.append(ValidationRule(type=ValidationType.MAX, value=prop["maximum"]))
    if prop.get("pattern"):
        rules.append(ValidationRule(type=ValidationType.PATTERN, value=str(prop["pattern"])))
    if field_type is FieldType.STRING and str(prop.get("format", "")).lower() == "email":
        rules.append(ValidationRule(type=ValidationType.EMAIL))
    return rules


def _default_value(prop: dict) -> Optional[str]:
    if "default" not in prop or prop["default"] is None:
        return None
    value = prop["default"]
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return None


class _Importer:
    def __init__(self, schemas: dict, base_path: str, id_factory: IdFactory):
        self.schemas = schemas
        self.base_path = base_path
        self.new_id = id_factory
        self.result = ImportResult()
        self.entity_by_schema: dict[str, Entity] = {}
        self.pending: list[_PendingRef] = []

    def warn(self, code: DiagnosticCode, message: str, path: Optional[str] = None) -> None:
        self.result.warn(code, message, path)

    # pass 1
    def extract_entities(self) -> None:
        used_names: set[str] = set()
        for schema_name, schema in self.schemas.items():
            path = f"{self.base_path}.{schema_name}"
            if not is_object_schema(schema):
                self.warn(DiagnosticCode.SKIPPED_SCHEMA, f"Schema '{schema_name}' is not an object schema", path)
                continue

            props, required = merged_object(schema, self.schemas)
            owner_refs_before = len(self.pending)
            fields: list[Field] = []
            taken: set[str] = set(RESERVED_COLUMNS)
            for prop_name, prop in props.items():
                if prop_name.lower() == "id":
                    continue
                field = self.extract_field(
                    schema_name, prop_name, prop, prop_name in required, f"{path}.properties.{prop_name}", taken
                )
                if field is not None:
                    fields.append(field)

            has_refs = len(self.pending) > owner_refs_before
            if not fields and not has_refs:
                self.warn(DiagnosticCode.EMPTY_SCHEMA, f"Schema '{schema_name}' has no usable properties", path)
                continue

            name = to_pascal_case(sanitize_name(schema_name))
            if name in used_names:
                self.warn(DiagnosticCode.NAME_COLLISION, f"Schema '{schema_name}' maps to an existing entity name '{name}'", path)
            used_names.add(name)

            description = schema.get("description") if isinstance(schema.get("description"), str) else None
            entity = Entity(id=self.new_id(), name=name, description=description, fields=fields)
            self.entity_by_schema[schema_name] = entity
            self.result.entities.append(entity)

    def extract_field(
        self, owner: str, prop_name: str, prop: Any, is_required: bool, path: str, taken: set[str]
    ) -> Optional[Field]:
        """
        프로퍼티 하나를 필드로 변환한다. $ref 는 pass 2 로 미루고 None.
        - taken: 이 스키마에서 이미 쓰인 필드명/컬럼명 (PK, 감사 컬럼 포함)
        """
        if not isinstance(prop, dict):
            self.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Property '{prop_name}' is not a schema object", path)
            return None

        nullable = bool(prop["nullable"]) if "nullable" in prop else not is_required
        type_ = prop.get("type")
        if isinstance(type_, list):
            # OpenAPI 3.1: type: [string, "null"]
            members = [t for t in type_ if isinstance(t, str)]
            if "null" in members and "nullable" not in prop:
                nullable = True
            type_ = next((t for t in members if t != "null"), None)

        if "$ref" in prop:
            self.pending.append(_PendingRef(owner, prop_name, ref_name(prop["$ref"]), RelationType.MANY_TO_ONE, nullable, path))
            return None
        if type_ == "array":
            items = prop.get("items") if isinstance(prop.get("items"), dict) else {}
            if "$ref" in items:
                self.pending.append(_PendingRef(owner, prop_name, ref_name(items["$ref"]), RelationType.ONE_TO_MANY, True, path))
                return None
            self.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Property '{prop_name}' in '{owner}' is an array of primitives, mapped to String", path)
            field_type = FieldType.STRING
        elif prop.get("enum"):
            field_type = FieldType.STRING
        elif type_ == "object" or "allOf" in prop or "oneOf" in prop or "anyOf" in prop:
            self.warn(DiagnosticCode.UNSUPPORTED_FEATURE, f"Inline object property '{prop_name}' in '{owner}' mapped to String", path)
            field_type = FieldType.STRING
        else:
            field_type = field_type_from_openapi(type_, prop.get("format"))

        name = to_camel_case(sanitize_name(prop_name))
        column = camel_to_snake(name)
        if name in taken or column in taken:
            self.warn(
                DiagnosticCode.NAME_COLLISION,
                f"Property '{prop_name}' in '{owner}' maps to field '{name}' (column '{column}') that is already used",
                path,
            )
            return None
        taken.update((name, column))

        return Field(
            id=self.new_id(),
            name=name,
            column_name=column,
            type=field_type,
            nullable=nullable,
            validations=_validation_rules(prop, nullable, field_type),
            default_value=_default_value(prop),
            description=prop.get("description") if isinstance(prop.get("description"), str) else None,
        )

    # pass 2
    def resolve_relations(self) -> None:
        fk_columns: dict[str, set[str]] = {}
        for ref in self.pending:
            source = self.entity_by_schema.get(ref.owner)
            target = self.entity_by_schema.get(ref.target)
            if source is None or target is None:
                self.warn(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Reference from '{ref.owner}.{ref.prop}' to '{ref.target}' does not resolve to an imported entity",
                    ref.path,
                )
                continue

            column = f"{singularize(camel_to_snake(target.name))}_id"
            if ref.relation.owns_foreign_key:
                used = fk_columns.setdefault(ref.owner, set())
                if column in used:
                    # 같은 대상을 두 번 참조하면 프로퍼티 이름으로 컬럼을 만든다
                    column = f"{camel_to_snake(sanitize_name(ref.prop))}_id"
                if column in used:
                    self.warn(
                        DiagnosticCode.NAME_COLLISION,
                        f"Reference '{ref.owner}.{ref.prop}' needs foreign key column '{column}' that is already used",
                        ref.path,
                    )
                    continue
                used.add(column)
                self._drop_field_on_column(source, column, ref)

            self.result.relations.append(Relation(
                id=self.new_id(),
                type=ref.relation,
                source_entity_id=source.id,
                target_entity_id=target.id,
                source_field_name=to_camel_case(sanitize_name(ref.prop)),
                foreign_key=ForeignKeyConfig(column_name=column, nullable=ref.nullable),
            ))

    def _drop_field_on_column(self, entity: Entity, column: str, ref: _PendingRef) -> None:
        # authorId + author($ref) 처럼 FK 컬럼과 겹치는 필드는 관계 쪽을 남긴다
        clash = [f for f in entity.fields if f.resolved_column_name() == column]
        if not clash:
            return
        entity.fields = [f for f in entity.fields if f.resolved_column_name() != column]
        self.warn(
            DiagnosticCode.NAME_COLLISION,
            f"Field '{clash[0].name}' in '{ref.owner}' was dropped: column '{column}' holds the foreign key for '{ref.prop}'",
            ref.path,
        )


def import_openapi(text: str, filename: str = "openapi.json", *, id_factory: IdFactory = _default_id) -> ImportResult:
    """
    문서 텍스트를 엔티티/관계로 변환한다. 예외를 던지지 않고 진단으로 보고한다.
    - errors 가 있으면 entities/relations 는 비어 있다.
    """
    doc = load_document(text, filename)
    if isinstance(doc, Diagnostic):
        return ImportResult.failed(doc)

    if "openapi" not in doc and "swagger" not in doc:
        return ImportResult.failed(Diagnostic(
            code=DiagnosticCode.MISSING_REQUIRED_FIELD,
            message=f"'{filename}' has neither an 'openapi' nor a 'swagger' version field",
            path="openapi",
        ))

    schemas, base_path = _schemas_of(doc)
    info = doc.get("info") if isinstance(doc.get("info"), dict) else {}

    importer = _Importer(schemas if isinstance(schemas, dict) else {}, base_path, id_factory)
    importer.result.title = str(info["title"]) if info.get("title") is not None else None
    importer.result.version = str(info["version"]) if info.get("version") is not None else None

    if not importer.schemas:
        importer.warn(DiagnosticCode.EMPTY_SCHEMA, f"No schemas found in {base_path}", base_path)
        return importer.result

    importer.extract_entities()
    importer.resolve_relations()
    logger.debug(
        "Imported %d entities, %d relations from %s (%d warnings)",
        len(importer.result.entities), len(importer.result.relations), filename, len(importer.result.warnings),
    )
    return importer.result
