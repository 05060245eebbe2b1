"""OpenAPI 파일 러너: 스펙 문서 → 모델 JSON, 모델 JSON → OpenAPI 문서."""
from __future__ import annotations
from pathlib import Path
from typing import Optional

from rich.console import Console

from erd_core.config import settings
from erd_core.diagnostics import ImportResult
from erd_core.model import ProjectModel
from erd_core.model_io import load_project, load_text, write_project
from openapi_engine.exporter import dump_document, export_openapi
from openapi_engine.importer import import_openapi

console = Console()


def run_openapi_import(
    spec_path: Path,
    out_dir: Path | None = None,
    out_file: str | None = None,
) -> tuple[ImportResult, Optional[Path]]:
    result = import_openapi(load_text(spec_path), filename=spec_path.name)
    console.print(f"[bold]Spec:[/bold] {spec_path}")
    if not result.ok:
        return result, None

    console.print(
        f"Imported [green]{len(result.entities)}[/green] entities, "
        f"[green]{len(result.relations)}[/green] relations"
    )
    base = out_dir or settings.output_dir / "models"
    out_path = base / (out_file or f"{spec_path.stem}.model.json")
    project = ProjectModel(
        project_name=result.title or settings.project_name,
        entities=result.entities,
        relations=result.relations,
    )
    write_project(project, out_path)
    console.print(f"[bold green]Model:[/bold green] {out_path}")
    return result, out_path


def run_openapi_export(
    model_path: Path,
    out_dir: Path | None = None,
    out_file: str = "openapi.json",
    version: str = "1.0.0",
) -> Path:
    project = load_project(model_path)
    base = out_dir or settings.output_dir / "openapi"
    base.mkdir(parents=True, exist_ok=True)
    out_path = base / out_file

    doc = export_openapi(project.entities, project.relations, project.project_name, version=version)
    fmt = "yaml" if out_path.suffix.lower() in (".yaml", ".yml") else "json"
    out_path.write_text(dump_document(doc, fmt), encoding="utf-8")
    console.print(f"[bold green]OpenAPI:[/bold green] {out_path}")
    return out_path
