from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from trello_sync.domain.enums import ChecklistPolicy, DeletionPolicy
from trello_sync.domain.errors import MissingCredentials

DEFAULT_API_URL = "https://api.trello.com/1"


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _suffixes(value: str | None) -> tuple[str, ...]:
    items = [item.strip() for item in (value or "").split(",") if item.strip()]
    return tuple(item if item.startswith(".") else f".{item}" for item in items)


@dataclass(frozen=True)
class Settings:
    database_url: str
    api_key: str | None = None
    api_token: str | None = None
    list_id: str | None = None
    red_label_id: str | None = None
    api_url: str = DEFAULT_API_URL
    http_timeout_sec: float = 30.0
    log_level: str = "INFO"
    log_dir: str = "logs"
    sync_interval_sec: int = 300
    checklist_policy: ChecklistPolicy = ChecklistPolicy.STRICT
    deletion_policy: DeletionPolicy = DeletionPolicy.KEEP
    adopt_by_title: bool = False
    verify_on_save: bool = False
    watch_extensions: tuple[str, ...] = (".ts",)

    def require_credentials(self) -> None:
        missing = [
            name
            for name, value in (
                ("TRELLO_API_KEY", self.api_key),
                ("TRELLO_API_TOKEN", self.api_token),
                ("TRELLO_LIST_ID", self.list_id),
            )
            if not value
        ]
        if missing:
            raise MissingCredentials(missing)

    def watches(self, path: str | Path) -> bool:
        if not self.watch_extensions:
            return True
        return str(path).endswith(self.watch_extensions)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    def get(name: str, default: str = "") -> str:
        return (env.get(name) or default).strip()

    home = Path(get("TRELLO_SYNC_HOME") or Path.home() / ".trello-sync").expanduser()
    database_url = get("DATABASE_URL") or f"sqlite:///{home / 'tasks.db'}"
    extensions = get("WATCH_EXTENSIONS", ".ts")

    return Settings(
        database_url=database_url,
        api_key=get("TRELLO_API_KEY") or None,
        api_token=get("TRELLO_API_TOKEN") or None,
        list_id=get("TRELLO_LIST_ID") or None,
        red_label_id=get("TRELLO_RED_LABEL_ID") or None,
        api_url=get("TRELLO_API_URL", DEFAULT_API_URL).rstrip("/"),
        http_timeout_sec=float(get("HTTP_TIMEOUT_SEC", "30")),
        log_level=get("LOG_LEVEL", "INFO"),
        log_dir=get("LOG_DIR") or str(home / "logs"),
        sync_interval_sec=int(get("SYNC_INTERVAL_SEC", "300")),
        checklist_policy=ChecklistPolicy(get("CHECKLIST_POLICY", "strict").lower()),
        deletion_policy=DeletionPolicy(get("DELETION_POLICY", "keep").lower()),
        adopt_by_title=_flag(env.get("ADOPT_BY_TITLE")),
        verify_on_save=_flag(env.get("VERIFY_ON_SAVE")),
        watch_extensions=_suffixes(extensions),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_env()
    return load_settings()
