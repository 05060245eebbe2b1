"""임포터/검증기 공용 진단 레코드와 결과 컨테이너."""
from __future__ import annotations
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from erd_core.model import Entity, Relation


class DiagnosticCode(str, Enum):
    # errors: 처리 중단, 빈 결과
    PARSE_FAILED = "PARSE_FAILED"
    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    DANGLING_RELATION = "DANGLING_RELATION"
    DUPLICATE_ENTITY_ID = "DUPLICATE_ENTITY_ID"
    DUPLICATE_TABLE_NAME = "DUPLICATE_TABLE_NAME"
    DUPLICATE_COLUMN = "DUPLICATE_COLUMN"
    # warnings: 부분 결과 허용
    EMPTY_SCHEMA = "EMPTY_SCHEMA"
    SKIPPED_SCHEMA = "SKIPPED_SCHEMA"
    UNRESOLVED_REFERENCE = "UNRESOLVED_REFERENCE"
    UNSUPPORTED_FEATURE = "UNSUPPORTED_FEATURE"
    NAME_COLLISION = "NAME_COLLISION"


class Diagnostic(BaseModel):
    code: DiagnosticCode
    message: str
    path: Optional[str] = None

    def __str__(self) -> str:
        where = f" ({self.path})" if self.path else ""
        return f"[{self.code.value}] {self.message}{where}"


class ImportResult(BaseModel):
    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)
    warnings: list[Diagnostic] = Field(default_factory=list)
    errors: list[Diagnostic] = Field(default_factory=list)
    title: Optional[str] = None
    version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def failed(cls, error: Diagnostic, warnings: Optional[list[Diagnostic]] = None) -> "ImportResult":
        return cls(errors=[error], warnings=list(warnings or []))

    def warn(self, code: DiagnosticCode, message: str, path: Optional[str] = None) -> None:
        self.warnings.append(Diagnostic(code=code, message=message, path=path))

    def to_json_dict(self) -> dict:
        return {
            "entities": [e.to_json_dict() for e in self.entities],
            "relations": [r.to_json_dict() for r in self.relations],
            "warnings": [w.model_dump(mode="json", exclude_none=True) for w in self.warnings],
            "errors": [e.model_dump(mode="json", exclude_none=True) for e in self.errors],
            "title": self.title,
            "version": self.version,
        }
