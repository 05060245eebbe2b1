from __future__ import annotations
from pathlib import Path
import logging
import time
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from erd_core.config import settings
from erd_core.errors import SchemaEngineError
from ddl_engine.run import run_ddl

logger = logging.getLogger(__name__)


class Handler(FileSystemEventHandler):
    def __init__(self, model_path: Path, out_dir: Path | None, out_file: str, debounce: float):
        self.model_path = model_path.resolve()
        self.out_dir = out_dir
        self.out_file = out_file
        self.debounce = debounce
        self._last = 0.0

    def on_any_event(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() != self.model_path:
            return

        # 에디터 저장 시 연속 이벤트 무시
        now = time.time()
        if now - self._last < self.debounce:
            return
        self._last = now

        try:
            run_ddl(self.model_path, out_dir=self.out_dir, out_file=self.out_file, strict=False)
        except SchemaEngineError as e:
            logger.error("DDL regeneration failed: %s", e)


def watch(model: Path, out_dir: Path | None = None, out_file: str = "schema.sql") -> None:
    model_path = model.expanduser()
    if not model_path.is_file():
        raise FileNotFoundError(f"model file not found: {model_path}")

    handler = Handler(model_path, out_dir, out_file, settings.watch_debounce)
    obs = Observer()
    obs.schedule(handler, str(model_path.resolve().parent), recursive=False)
    obs.start()
    logger.info("Watching %s", model_path)
    try:
        while True:
            time.sleep(1)
    finally:
        obs.stop()
        obs.join()
