"""ERD 모델: 엔티티 / 필드 / 관계 (에디터·임포터·생성기가 공유하는 계약)."""
from __future__ import annotations
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field as PydanticField, model_validator
from pydantic.alias_generators import to_camel

from erd_core.naming import camel_to_snake, singularize, table_name_for

# 모든 엔티티 테이블에 생성기가 붙이는 PK + 감사 컬럼
RESERVED_COLUMNS = ("id", "status", "created_at", "updated_at", "created_by", "updated_by", "version")


class FieldType(str, Enum):
    STRING = "String"
    LONG = "Long"
    INTEGER = "Integer"
    DOUBLE = "Double"
    FLOAT = "Float"
    BIG_DECIMAL = "BigDecimal"
    BOOLEAN = "Boolean"
    LOCAL_DATE = "LocalDate"
    LOCAL_DATE_TIME = "LocalDateTime"
    LOCAL_TIME = "LocalTime"
    INSTANT = "Instant"
    UUID = "UUID"
    BYTES = "byte[]"


class ValidationType(str, Enum):
    NOT_NULL = "NotNull"
    NOT_BLANK = "NotBlank"
    EMAIL = "Email"
    SIZE = "Size"
    MIN = "Min"
    MAX = "Max"
    PATTERN = "Pattern"


class RelationType(str, Enum):
    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"
    MANY_TO_MANY = "ManyToMany"

    @property
    def owns_foreign_key(self) -> bool:
        return self in (RelationType.MANY_TO_ONE, RelationType.ONE_TO_ONE)


class FKAction(str, Enum):
    CASCADE = "CASCADE"
    SET_NULL = "SET_NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO_ACTION"

    @property
    def sql(self) -> str:
        return self.value.replace("_", " ")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ValidationRule(_CamelModel):
    type: ValidationType
    value: Optional[Union[int, float, str]] = None
    message: Optional[str] = None


class Field(_CamelModel):
    id: str = ""
    name: str
    column_name: str = ""
    type: FieldType = FieldType.STRING
    nullable: bool = True
    unique: bool = False
    validations: list[ValidationRule] = PydanticField(default_factory=list)
    default_value: Optional[str] = None
    description: Optional[str] = None

    def resolved_column_name(self) -> str:
        return self.column_name or camel_to_snake(self.name)

    def has_rule(self, *kinds: ValidationType) -> bool:
        return any(v.type in kinds for v in self.validations)

    def rule(self, kind: ValidationType) -> Optional[ValidationRule]:
        return next((v for v in self.validations if v.type is kind), None)


class Entity(_CamelModel):
    id: str
    name: str
    table_name: str = ""
    description: Optional[str] = None
    fields: list[Field] = PydanticField(default_factory=list)

    @model_validator(mode="after")
    def _unique_field_names(self) -> "Entity":
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"duplicate field name '{f.name}' in entity '{self.name}'")
            seen.add(f.name)
        return self

    def resolved_table_name(self) -> str:
        return self.table_name or table_name_for(self.name)


class ForeignKeyConfig(_CamelModel):
    column_name: str = ""
    nullable: bool = True
    on_delete: FKAction = FKAction.NO_ACTION
    on_update: FKAction = FKAction.NO_ACTION


class JoinTableConfig(_CamelModel):
    name: str
    join_column: str
    inverse_join_column: str

    @model_validator(mode="after")
    def _distinct_columns(self) -> "JoinTableConfig":
        if self.join_column == self.inverse_join_column:
            raise ValueError(f"join table '{self.name}' needs two distinct column names")
        return self


class Relation(_CamelModel):
    id: str
    type: RelationType = RelationType.MANY_TO_ONE
    source_entity_id: str
    target_entity_id: str
    source_field_name: Optional[str] = None
    foreign_key: ForeignKeyConfig = PydanticField(default_factory=ForeignKeyConfig)
    join_table: Optional[JoinTableConfig] = None

    @model_validator(mode="after")
    def _many_to_many_needs_join_table(self) -> "Relation":
        if self.type is RelationType.MANY_TO_MANY and self.join_table is None:
            raise ValueError(f"ManyToMany relation '{self.id}' requires a join table")
        return self

    def fk_column(self, target: Entity) -> str:
        # 명시값 없으면 <대상 테이블 단수형>_id
        return self.foreign_key.column_name or f"{singularize(target.resolved_table_name())}_id"


class ProjectModel(_CamelModel):
    project_name: str = "API Project"
    entities: list[Entity] = PydanticField(default_factory=list)
    relations: list[Relation] = PydanticField(default_factory=list)
