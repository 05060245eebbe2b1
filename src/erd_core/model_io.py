"""모델 스냅샷 파일(JSON) 읽기/쓰기."""
from __future__ import annotations
import json
from pathlib import Path

from pydantic import ValidationError

from erd_core.errors import ModelFileError
from erd_core.model import ProjectModel


def load_text(p: Path) -> str:
    return p.read_text(encoding="utf-8", errors="ignore")


def parse_project(text: str, source: str = "<memory>") -> ProjectModel:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ModelFileError(f"{source}: not valid JSON ({e.msg} at line {e.lineno})") from e
    try:
        return ProjectModel.model_validate(data)
    except ValidationError as e:
        raise ModelFileError(f"{source}: not a valid project model\n{e}") from e


def load_project(path: Path) -> ProjectModel:
    if not path.is_file():
        raise ModelFileError(f"model file not found: {path}")
    return parse_project(load_text(path), source=str(path))


def write_project(project: ProjectModel, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(project.to_json_dict(), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return out_path
