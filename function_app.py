import json
import logging
import sys
from pathlib import Path

import azure.functions as func

app = func.FunctionApp()

# ---------------------------------------------------------------
# 1) Azure Functions 고객 패키지 / src 경로 보장
#    GitHub Actions: pip install --target=".python_packages/lib/site-packages"
# ---------------------------------------------------------------
def _ensure_paths_on_syspath() -> None:
    base_dir = Path(__file__).resolve().parent
    candidates = [
        Path("/home/site/wwwroot/.python_packages/lib/site-packages"),
        base_dir / ".python_packages" / "lib" / "site-packages",
    ]
    lib_dir = base_dir / ".python_packages" / "lib"
    if lib_dir.exists():
        candidates += list(lib_dir.glob("python*/site-packages"))
    candidates.append(base_dir / "src")

    for p in candidates:
        if p.exists():
            sp = str(p)
            if sp not in sys.path:
                sys.path.insert(0, sp)
            logging.info(f"Path enabled: {sp}")


_ensure_paths_on_syspath()

from pydantic import ValidationError  # noqa: E402

from erd_core.config import settings  # noqa: E402
from erd_core.errors import ModelValidationError, SchemaEngineError  # noqa: E402
from erd_core.model import ProjectModel  # noqa: E402
from ddl_engine import generate_sql, parse_sql  # noqa: E402
from openapi_engine import export_openapi, import_openapi  # noqa: E402

MAX_BODY_BYTES = 2_000_000


def _error(code: str, message: str, details: str = "", status: int = 500) -> func.HttpResponse:
    payload = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details[:20_000]
    return func.HttpResponse(
        json.dumps(payload, ensure_ascii=False),
        status_code=status,
        mimetype="application/json",
    )


def _json(payload: dict, status: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload, ensure_ascii=False),
        status_code=status,
        mimetype="application/json",
    )


def _body_text(req: func.HttpRequest) -> str | None:
    raw = req.get_body() or b""
    if len(raw) > MAX_BODY_BYTES:
        return None
    return raw.decode("utf-8", errors="replace")


def _project_from(req: func.HttpRequest) -> ProjectModel | func.HttpResponse:
    try:
        body = req.get_json()
    except ValueError:
        logging.exception("BAD_JSON")
        return _error("BAD_JSON", "Request body must be valid JSON", status=400)
    if not isinstance(body, dict):
        return _error("BAD_JSON", "Request body must be a JSON object", status=400)
    try:
        return ProjectModel.model_validate(body)
    except ValidationError as e:
        return _error("INVALID_MODEL", "Request body is not a valid project model", details=str(e), status=400)


def _engine_error(e: SchemaEngineError) -> func.HttpResponse:
    if isinstance(e, ModelValidationError):
        details = "\n".join(str(d) for d in e.diagnostics)
        return _error("INVALID_MODEL", "Model failed validation", details=details, status=422)
    return _error("ENGINE_ERROR", str(e), status=422)


# ---------------------------------------------------------------
# 2) 핸들러 (HttpRequest -> HttpResponse)
# ---------------------------------------------------------------
def handle_ddl(req: func.HttpRequest) -> func.HttpResponse:
    project = _project_from(req)
    if isinstance(project, func.HttpResponse):
        return project

    strict = (req.params.get("strict") or "true").lower() != "false"
    try:
        sql = generate_sql(
            project.entities,
            project.relations,
            project.project_name or settings.project_name,
            strict=strict,
            banner_title=settings.banner_title,
        )
    except SchemaEngineError as e:
        logging.warning(f"DDL generation rejected: {e}")
        return _engine_error(e)
    return func.HttpResponse(sql, status_code=200, mimetype="text/plain")


def handle_import_openapi(req: func.HttpRequest) -> func.HttpResponse:
    text = _body_text(req)
    if text is None:
        return _error("BODY_TOO_LARGE", f"Request body exceeds {MAX_BODY_BYTES} bytes", status=413)
    if not text.strip():
        return _error("EMPTY_BODY", "Request body must contain an OpenAPI document", status=400)

    filename = req.params.get("filename") or "openapi.json"
    result = import_openapi(text, filename)
    return _json(result.to_json_dict())


def handle_import_sql(req: func.HttpRequest) -> func.HttpResponse:
    text = _body_text(req)
    if text is None:
        return _error("BODY_TOO_LARGE", f"Request body exceeds {MAX_BODY_BYTES} bytes", status=413)
    if not text.strip():
        return _error("EMPTY_BODY", "Request body must contain a SQL script", status=400)
    return _json(parse_sql(text).to_json_dict())


def handle_export_openapi(req: func.HttpRequest) -> func.HttpResponse:
    project = _project_from(req)
    if isinstance(project, func.HttpResponse):
        return project
    version = req.params.get("version") or "1.0.0"
    return _json(export_openapi(project.entities, project.relations, project.project_name, version=version))


# ---------------------------------------------------------------
# 3) HTTP 엔드포인트
# ---------------------------------------------------------------
@app.route(route="ddl", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def ddl(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("ddl() called")
    return handle_ddl(req)


@app.route(route="import/openapi", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def import_openapi_route(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("import_openapi() called")
    return handle_import_openapi(req)


@app.route(route="import/sql", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def import_sql_route(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("import_sql() called")
    return handle_import_sql(req)


@app.route(route="export/openapi", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def export_openapi_route(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("export_openapi() called")
    return handle_export_openapi(req)
