from __future__ import annotations
from erd_core.diagnostics import Diagnostic


class SchemaEngineError(Exception):
    """엔진 공통 예외."""


class ModelValidationError(SchemaEngineError):
    def __init__(self, diagnostics: list[Diagnostic]):
        self.diagnostics = list(diagnostics)
        lines = "; ".join(str(d) for d in self.diagnostics)
        super().__init__(f"model is not valid: {lines}")


class DanglingRelationError(ModelValidationError):
    """관계가 스냅샷에 없는 엔티티 id를 가리킬 때."""


class ModelFileError(SchemaEngineError):
    """모델 파일을 읽거나 해석할 수 없을 때."""
