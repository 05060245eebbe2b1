"""DDL 파일 러너: 모델 JSON → schema.sql, SQL 스크립트 → 모델 JSON."""
from __future__ import annotations
from pathlib import Path
from typing import Optional

from rich.console import Console

from erd_core.config import settings
from erd_core.diagnostics import ImportResult
from erd_core.model import ProjectModel
from erd_core.model_io import load_project, load_text, write_project
from ddl_engine.generator import generate_sql, write_ddl
from ddl_engine.sql_parser import parse_sql

console = Console()


def run_ddl(
    model_path: Path,
    out_dir: Path | None = None,
    out_file: str = "schema.sql",
    strict: bool = True,
) -> Path:
    project = load_project(model_path)
    base = out_dir or settings.output_dir / "ddl"
    out_path = base / out_file

    console.print(f"[bold]Model:[/bold] {model_path}")
    console.print(
        f"Found [green]{len(project.entities)}[/green] entities, "
        f"[green]{len(project.relations)}[/green] relations"
    )

    sql = generate_sql(
        project.entities,
        project.relations,
        project.project_name or settings.project_name,
        strict=strict,
        banner_title=settings.banner_title,
    )
    write_ddl(sql, out_path)
    console.print(f"[bold green]DDL:[/bold green] {out_path}")
    return out_path


def run_sql_import(
    sql_path: Path,
    out_dir: Path | None = None,
    out_file: str | None = None,
) -> tuple[ImportResult, Optional[Path]]:
    result = parse_sql(load_text(sql_path))
    console.print(f"[bold]SQL:[/bold] {sql_path}")
    if not result.ok:
        return result, None

    base = out_dir or settings.output_dir / "models"
    out_path = base / (out_file or f"{sql_path.stem}.model.json")
    project = ProjectModel(
        project_name=settings.project_name,
        entities=result.entities,
        relations=result.relations,
    )
    write_project(project, out_path)
    console.print(f"[bold green]Model:[/bold green] {out_path}")
    return result, out_path
