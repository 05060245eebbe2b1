"""OpenAPI/Swagger 문서 로드: JSON 우선, 실패 시 YAML."""
from __future__ import annotations
import json
import logging
from typing import Any, Union

import yaml

from erd_core.diagnostics import Diagnostic, DiagnosticCode

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def load_document(text: str, filename: str = "openapi.json") -> Union[dict[str, Any], Diagnostic]:
    """
    파싱 결과(dict) 또는 실패 진단을 돌려준다.
    확장자가 .yaml/.yml 이면 YAML 먼저, 그 외에는 JSON 먼저 시도한다.
    """
    prefer_yaml = filename.lower().endswith(YAML_SUFFIXES)
    parsers = (_parse_yaml, _parse_json) if prefer_yaml else (_parse_json, _parse_yaml)

    data: Any = None
    errors: list[str] = []
    for parse in parsers:
        try:
            data = parse(text)
            break
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            errors.append(f"{parse.__name__.lstrip('_')}: {e}")
    else:
        logger.debug("Could not parse %s: %s", filename, errors)
        return Diagnostic(
            code=DiagnosticCode.PARSE_FAILED,
            message=f"Could not parse '{filename}' as JSON or YAML",
        )

    if not isinstance(data, dict):
        return Diagnostic(
            code=DiagnosticCode.INVALID_DOCUMENT,
            message=f"'{filename}' does not contain an object at the top level",
        )
    return data


def _parse_json(text: str) -> Any:
    return json.loads(text)


def _parse_yaml(text: str) -> Any:
    return yaml.safe_load(text)
