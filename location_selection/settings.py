from os import environ
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_DIR = Path(__file__).parent.parent.resolve()

ENV_FILE = environ.get("ENV_FILE", PROJECT_DIR / ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, env_ignore_empty=True, extra="ignore")

    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    VERBOSE: bool = False
    SENTRY_DSN: str = ""

    DATA_DIR: str = "~/.location_selection"

    RECENTS_MAX_LIMIT: int = 50  # entries kept per hop
    RECENTS_DISPLAY_LIMIT: int = 3  # entries shown per hop
    RECENTS_ENABLED_BY_DEFAULT: bool = True

    @model_validator(mode="after")
    def validate_settings(self):
        for name in ["RECENTS_MAX_LIMIT", "RECENTS_DISPLAY_LIMIT"]:
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")
        return self

    @property
    def recents_store_dir(self) -> Path:
        path = Path(self.DATA_DIR).expanduser() / "settings"
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def logs_dir(self) -> Path:
        path = Path(self.DATA_DIR).expanduser() / "logs"
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
        return path


settings = Settings()
