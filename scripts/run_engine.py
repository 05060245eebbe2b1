#!/usr/bin/env python3
"""
schema-engine 과 같은 기능을 설치 없이 실행.

  python scripts/run_engine.py ddl model.json
  python scripts/run_engine.py import-openapi petstore.yaml
  python scripts/run_engine.py import-sql schema.sql
  python scripts/run_engine.py export-openapi model.json --out openapi.yaml
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# 프로젝트 루트에서 실행 시 src 로드 (pip install 없이 실행 가능)
_ROOT = Path(__file__).resolve().parent.parent
_SRC = _ROOT / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="ERD 모델 ↔ SQL DDL / OpenAPI 변환",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", choices=["ddl", "import-openapi", "import-sql", "export-openapi"])
    parser.add_argument("path", type=Path, help="입력 파일 (모델 JSON, OpenAPI 문서 또는 DDL 스크립트)")
    parser.add_argument("--out-dir", type=Path, default=None, help="출력 디렉터리")
    parser.add_argument("--out", default=None, help="출력 파일명")
    parser.add_argument("--lenient", action="store_true", help="(ddl) 끊어진 관계를 건너뜀")

    args = parser.parse_args()

    from erd_core.config import settings
    from erd_core.errors import SchemaEngineError
    from erd_core.logging_setup import configure_logging
    from ddl_engine import run_ddl, run_sql_import
    from openapi_engine import run_openapi_export, run_openapi_import

    configure_logging(settings.log_level)

    try:
        if args.command == "ddl":
            run_ddl(args.path, out_dir=args.out_dir, out_file=args.out or "schema.sql", strict=not args.lenient)
        elif args.command == "export-openapi":
            run_openapi_export(args.path, out_dir=args.out_dir, out_file=args.out or "openapi.json")
        else:
            runner = run_openapi_import if args.command == "import-openapi" else run_sql_import
            result, _ = runner(args.path, out_dir=args.out_dir, out_file=args.out)
            for d in result.errors + result.warnings:
                print(d)
            if not result.ok:
                return 1
    except SchemaEngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
