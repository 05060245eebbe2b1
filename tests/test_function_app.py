"""Tests for the Azure Functions HTTP handlers."""

import json

import azure.functions as func

import function_app
from erd_core.model import ProjectModel


def _request(route: str, body: bytes, params: dict | None = None) -> func.HttpRequest:
    return func.HttpRequest(method="POST", url=f"/api/{route}", body=body, params=params or {})


def _project_body(library) -> bytes:
    entities, relations = library
    project = ProjectModel(project_name="Library", entities=entities, relations=relations)
    return json.dumps(project.to_json_dict()).encode("utf-8")


def _error_code(resp: func.HttpResponse) -> str:
    return json.loads(resp.get_body())["error"]["code"]


class TestDdl:
    def test_returns_sql(self, library) -> None:
        resp = function_app.handle_ddl(_request("ddl", _project_body(library)))
        assert resp.status_code == 200
        assert resp.mimetype == "text/plain"
        sql = resp.get_body().decode("utf-8")
        assert "-- Project: Library" in sql
        assert "fk_books_author_id" in sql

    def test_bad_json(self) -> None:
        resp = function_app.handle_ddl(_request("ddl", b"{nope"))
        assert resp.status_code == 400
        assert _error_code(resp) == "BAD_JSON"

    def test_invalid_model(self) -> None:
        resp = function_app.handle_ddl(_request("ddl", json.dumps({"entities": [{"name": "X"}]}).encode()))
        assert resp.status_code == 400
        assert _error_code(resp) == "INVALID_MODEL"

    def test_dangling_relation(self) -> None:
        body = {
            "entities": [{"id": "b", "name": "Book"}],
            "relations": [{"id": "r", "sourceEntityId": "b", "targetEntityId": "ghost"}],
        }
        resp = function_app.handle_ddl(_request("ddl", json.dumps(body).encode()))
        assert resp.status_code == 422
        error = json.loads(resp.get_body())["error"]
        assert error["code"] == "INVALID_MODEL"
        assert "DANGLING_RELATION" in error["details"]

        lenient = function_app.handle_ddl(_request("ddl", json.dumps(body).encode(), {"strict": "false"}))
        assert lenient.status_code == 200


class TestImports:
    def test_import_openapi(self) -> None:
        doc = "openapi: 3.0.0\ncomponents:\n  schemas:\n    Tag:\n      type: object\n      properties:\n        label:\n          type: string\n"
        resp = function_app.handle_import_openapi(_request("import/openapi", doc.encode(), {"filename": "tags.yaml"}))
        assert resp.status_code == 200
        payload = json.loads(resp.get_body())
        assert payload["errors"] == []
        assert payload["entities"][0]["name"] == "Tag"
        assert payload["entities"][0]["tableName"] == ""

    def test_import_openapi_reports_errors_in_body(self) -> None:
        resp = function_app.handle_import_openapi(_request("import/openapi", b'{"info": {}}'))
        assert resp.status_code == 200
        payload = json.loads(resp.get_body())
        assert payload["entities"] == []
        assert payload["errors"][0]["code"] == "MISSING_REQUIRED_FIELD"

    def test_empty_body(self) -> None:
        resp = function_app.handle_import_sql(_request("import/sql", b"  "))
        assert resp.status_code == 400
        assert _error_code(resp) == "EMPTY_BODY"

    def test_import_sql(self) -> None:
        resp = function_app.handle_import_sql(
            _request("import/sql", b"CREATE TABLE tags (id SERIAL PRIMARY KEY, label TEXT);")
        )
        payload = json.loads(resp.get_body())
        assert [e["name"] for e in payload["entities"]] == ["Tag"]


def test_export_openapi(library) -> None:
    resp = function_app.handle_export_openapi(_request("export/openapi", _project_body(library), {"version": "3.1.4"}))
    assert resp.status_code == 200
    doc = json.loads(resp.get_body())
    assert doc["info"] == {"title": "Library", "version": "3.1.4"}
    assert doc["components"]["schemas"]["Book"]["properties"]["author"] == {"$ref": "#/components/schemas/Author"}
