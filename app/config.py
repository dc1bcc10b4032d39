import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(ROOT_DIR / ".env")

COMPLETION_POLICIES = ("archive", "delete")


@dataclass(frozen=True)
class Settings:
    database_url: str
    database_password: str = ""
    user_id: str = "demo"
    completion_policy: str = "archive"
    list_limit: int = 10
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from the environment.

    DATABASE_URL is mandatory; a missing value raises KeyError at startup.
    """
    completion_policy = os.environ.get("COMPLETION_POLICY", "archive").strip().lower()
    if completion_policy not in COMPLETION_POLICIES:
        raise ValueError(f"COMPLETION_POLICY must be one of {COMPLETION_POLICIES}, got {completion_policy!r}")

    list_limit = int(os.environ.get("LIST_LIMIT", "10"))
    if list_limit < 1:
        raise ValueError(f"LIST_LIMIT must be at least 1, got {list_limit}")

    return Settings(
        database_url=os.environ["DATABASE_URL"],
        database_password=os.environ.get("DATABASE_PASSWORD", ""),
        user_id=os.environ.get("TASKS_USER_ID", "demo"),
        completion_policy=completion_policy,
        list_limit=list_limit,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
