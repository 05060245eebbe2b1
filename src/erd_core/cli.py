"""
스키마 엔진 CLI (schema-engine).
- ddl: 모델 JSON → PostgreSQL DDL
- import-openapi / import-sql: 스펙 문서 → 모델 JSON
- export-openapi: 모델 JSON → OpenAPI 문서
- watch: 모델 파일 변경 시 DDL 재생성
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from erd_core.config import settings
from erd_core.diagnostics import ImportResult
from erd_core.errors import ModelValidationError, SchemaEngineError
from erd_core.logging_setup import configure_logging
from ddl_engine.run import run_ddl, run_sql_import
from openapi_engine.run import run_openapi_export, run_openapi_import

console = Console()

app = typer.Typer(
    name="schema-engine",
    add_completion=False,
    help="ERD 모델 ↔ SQL DDL / OpenAPI 변환 도구",
)


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="로그 레벨 (DEBUG, INFO, WARNING ...)"),
):
    configure_logging(log_level)


def _fail(e: SchemaEngineError) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
    if isinstance(e, ModelValidationError):
        for d in e.diagnostics:
            console.print(f"  - {escape(str(d))}")
    raise typer.Exit(code=1)


def print_diagnostics(result: ImportResult) -> None:
    rows = [("error", d) for d in result.errors] + [("warning", d) for d in result.warnings]
    if not rows:
        return
    table = Table(title="Diagnostics")
    table.add_column("Level", no_wrap=True)
    table.add_column("Code", no_wrap=True)
    table.add_column("Message")
    table.add_column("Path")
    for level, d in rows:
        style = "red" if level == "error" else "yellow"
        table.add_row(f"[{style}]{level}[/{style}]", d.code.value, escape(d.message), escape(d.path or ""))
    console.print(table)


@app.command("ddl")
def cmd_ddl(
    model: Path = typer.Argument(..., help="모델 JSON 파일"),
    out_dir: Optional[Path] = typer.Option(None, help="출력 디렉터리 (기본: SCHEMA_OUTPUT_DIR/ddl)"),
    out_file: str = typer.Option("schema.sql", help="출력 DDL 파일명"),
    lenient: bool = typer.Option(False, "--lenient", help="끊어진 관계를 건너뛰고 계속 진행"),
):
    """모델 JSON → DDL 스크립트."""
    try:
        run_ddl(model, out_dir=out_dir, out_file=out_file, strict=not lenient)
    except SchemaEngineError as e:
        _fail(e)


@app.command("import-openapi")
def cmd_import_openapi(
    spec: Path = typer.Argument(..., exists=True, dir_okay=False, help="OpenAPI/Swagger 문서 (JSON 또는 YAML)"),
    out_dir: Optional[Path] = typer.Option(None, help="출력 디렉터리 (기본: SCHEMA_OUTPUT_DIR/models)"),
    out_file: Optional[str] = typer.Option(None, help="출력 모델 파일명"),
):
    """OpenAPI 문서 → 모델 JSON."""
    result, _ = run_openapi_import(spec, out_dir=out_dir, out_file=out_file)
    print_diagnostics(result)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("import-sql")
def cmd_import_sql(
    sql: Path = typer.Argument(..., exists=True, dir_okay=False, help="DDL 스크립트"),
    out_dir: Optional[Path] = typer.Option(None, help="출력 디렉터리 (기본: SCHEMA_OUTPUT_DIR/models)"),
    out_file: Optional[str] = typer.Option(None, help="출력 모델 파일명"),
):
    """DDL 스크립트 → 모델 JSON."""
    result, _ = run_sql_import(sql, out_dir=out_dir, out_file=out_file)
    print_diagnostics(result)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("export-openapi")
def cmd_export_openapi(
    model: Path = typer.Argument(..., help="모델 JSON 파일"),
    out_dir: Optional[Path] = typer.Option(None, help="출력 디렉터리 (기본: SCHEMA_OUTPUT_DIR/openapi)"),
    out_file: str = typer.Option("openapi.json", help="출력 파일명 (.yaml 이면 YAML)"),
    version: str = typer.Option("1.0.0", help="info.version"),
):
    """모델 JSON → OpenAPI 3 문서."""
    try:
        run_openapi_export(model, out_dir=out_dir, out_file=out_file, version=version)
    except SchemaEngineError as e:
        _fail(e)


@app.command("watch")
def cmd_watch(
    model: Path = typer.Argument(..., help="감시할 모델 JSON 파일"),
    out_dir: Optional[Path] = typer.Option(None, help="출력 디렉터리"),
    out_file: str = typer.Option("schema.sql", help="출력 DDL 파일명"),
):
    """모델 파일이 바뀔 때마다 DDL 재생성."""
    from erd_core.watch import watch

    try:
        watch(model, out_dir=out_dir, out_file=out_file)
    except FileNotFoundError as e:
        raise typer.BadParameter(str(e))
