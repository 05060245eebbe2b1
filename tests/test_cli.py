"""Tests for the schema-engine command line interface."""

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from erd_core.cli import app
from erd_core.model import ProjectModel
from erd_core.model_io import write_project

runner = CliRunner()

PETSTORE = {
    "openapi": "3.0.0",
    "info": {"title": "Petstore", "version": "1.0.0"},
    "components": {"schemas": {
        "Owner": {"type": "object", "properties": {"name": {"type": "string"}}},
        "Pet": {"type": "object", "required": ["name"], "properties": {
            "name": {"type": "string"},
            "owner": {"$ref": "#/components/schemas/Owner"},
            "Status": {"type": "string", "enum": ["available", "sold"]},
        }},
        "Code": {"type": "string"},
    }},
}


@pytest.fixture(name="model_file")
def library_model_file(tmp_path: Path, library) -> Path:
    entities, relations = library
    return write_project(ProjectModel(project_name="Library", entities=entities, relations=relations), tmp_path / "library.json")


class TestDdl:
    def test_writes_schema(self, tmp_path: Path, model_file: Path) -> None:
        result = runner.invoke(app, ["ddl", str(model_file), "--out-dir", str(tmp_path / "out")])
        assert result.exit_code == 0, result.output
        sql = (tmp_path / "out" / "schema.sql").read_text(encoding="utf-8")
        assert "-- Project: Library" in sql
        assert "CREATE TABLE books (" in sql

    def test_dangling_relation_fails_unless_lenient(self, tmp_path: Path) -> None:
        data = {
            "projectName": "Broken",
            "entities": [{"id": "b", "name": "Book"}],
            "relations": [{"id": "r", "type": "ManyToOne", "sourceEntityId": "b", "targetEntityId": "ghost"}],
        }
        model = tmp_path / "broken.json"
        model.write_text(json.dumps(data), encoding="utf-8")

        strict = runner.invoke(app, ["ddl", str(model), "--out-dir", str(tmp_path / "out")])
        assert strict.exit_code == 1
        assert "Error" in strict.output
        assert not (tmp_path / "out" / "schema.sql").exists()

        lenient = runner.invoke(app, ["ddl", str(model), "--out-dir", str(tmp_path / "out"), "--lenient"])
        assert lenient.exit_code == 0, lenient.output
        assert (tmp_path / "out" / "schema.sql").exists()

    def test_unreadable_model(self, tmp_path: Path) -> None:
        model = tmp_path / "bad.json"
        model.write_text("{", encoding="utf-8")
        result = runner.invoke(app, ["ddl", str(model)])
        assert result.exit_code == 1


class TestImports:
    def test_import_openapi(self, tmp_path: Path) -> None:
        spec = tmp_path / "petstore.json"
        spec.write_text(json.dumps(PETSTORE), encoding="utf-8")

        result = runner.invoke(app, ["import-openapi", str(spec), "--out-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "SKIPPED_SCHEMA" in result.output

        model = ProjectModel.model_validate_json((tmp_path / "petstore.model.json").read_text(encoding="utf-8"))
        assert model.project_name == "Petstore"
        assert [e.name for e in model.entities] == ["Owner", "Pet"]
        assert len(model.relations) == 1
        assert [f.name for f in model.entities[1].fields] == ["name"]

    def test_import_yaml_with_numeric_title(self, tmp_path: Path) -> None:
        spec = tmp_path / "calendar.yaml"
        spec.write_text(
            "openapi: 3.1.0\ninfo:\n  title: 2024\n  version: 1\ncomponents:\n  schemas:\n"
            "    Event:\n      type: object\n      properties:\n        label:\n          type: [string, \"null\"]\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["import-openapi", str(spec), "--out-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        model = ProjectModel.model_validate_json((tmp_path / "calendar.model.json").read_text(encoding="utf-8"))
        assert model.project_name == "2024"
        assert model.entities[0].fields[0].nullable is True

    def test_import_openapi_error_exit_code(self, tmp_path: Path) -> None:
        spec = tmp_path / "bad.json"
        spec.write_text(json.dumps({"info": {}}), encoding="utf-8")
        result = runner.invoke(app, ["import-openapi", str(spec), "--out-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert not (tmp_path / "bad.model.json").exists()

    def test_import_sql(self, tmp_path: Path) -> None:
        sql = tmp_path / "schema.sql"
        sql.write_text("CREATE TABLE tags (id SERIAL PRIMARY KEY, label VARCHAR(30) NOT NULL);", encoding="utf-8")
        result = runner.invoke(app, ["import-sql", str(sql), "--out-dir", str(tmp_path), "--out-file", "tags.json"])
        assert result.exit_code == 0, result.output
        model = ProjectModel.model_validate_json((tmp_path / "tags.json").read_text(encoding="utf-8"))
        assert model.entities[0].name == "Tag"
        assert model.entities[0].fields[0].name == "label"

    def test_missing_input_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["import-sql", str(tmp_path / "nope.sql")])
        assert result.exit_code != 0


class TestExport:
    def test_export_yaml(self, tmp_path: Path, model_file: Path) -> None:
        result = runner.invoke(
            app, ["export-openapi", str(model_file), "--out-dir", str(tmp_path), "--out-file", "api.yaml"]
        )
        assert result.exit_code == 0, result.output
        doc = yaml.safe_load((tmp_path / "api.yaml").read_text(encoding="utf-8"))
        assert doc["info"]["title"] == "Library"
        assert set(doc["components"]["schemas"]) == {"Book", "Author"}
