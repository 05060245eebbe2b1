from ddl_engine.generator import generate_sql
from ddl_engine.sql_parser import parse_sql
from ddl_engine.run import run_ddl, run_sql_import

__all__ = ["generate_sql", "parse_sql", "run_ddl", "run_sql_import"]
