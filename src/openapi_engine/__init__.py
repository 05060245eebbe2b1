from openapi_engine.importer import import_openapi
from openapi_engine.exporter import export_openapi, dump_document
from openapi_engine.run import run_openapi_import, run_openapi_export

__all__ = ["import_openapi", "export_openapi", "dump_document", "run_openapi_import", "run_openapi_export"]
