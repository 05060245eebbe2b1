from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    output_dir: Path = Field(default=Path("./out"), alias="SCHEMA_OUTPUT_DIR")
    project_name: str = Field(default="API Project", alias="SCHEMA_PROJECT_NAME")
    banner_title: str = Field(default="ERD Schema Engine", alias="SCHEMA_BANNER_TITLE")
    log_level: str = Field(default="INFO", alias="SCHEMA_LOG_LEVEL")
    watch_debounce: float = Field(default=0.8, alias="SCHEMA_WATCH_DEBOUNCE")

settings = Settings()
