from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

ENV_FILE = Path(".env")

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def _as_json_object(name: str, value: str | None) -> dict[str, dict[str, Any]]:
    if not value or not value.strip():
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} must be a JSON object: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError(f"{name} must be a JSON object")
    return parsed


@dataclass
class Settings:
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str | None = None
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_SESSION_TOKEN: str | None = None
    S3_PATH_STYLE_ACCESS: bool = False
    S3_RETRY_AFTER_SECONDS: float | None = None
    S3_BUCKET_OPTIONS: dict[str, dict[str, Any]] = field(default_factory=dict)
    READY_LOCATIONS: list[str] = field(default_factory=list)
    ENABLE_METRICS: bool = True
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        if self.S3_RETRY_AFTER_SECONDS is not None and self.S3_RETRY_AFTER_SECONDS <= 0:
            raise ValueError("S3_RETRY_AFTER_SECONDS must be a positive number of seconds.")
        for bucket, options in self.S3_BUCKET_OPTIONS.items():
            if not isinstance(options, dict):
                raise ValueError(
                    f"S3_BUCKET_OPTIONS[{bucket!r}] must be an object of bucket options."
                )
        self.LOG_LEVEL = self.LOG_LEVEL.upper()
        if self.LOG_LEVEL not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}.")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            S3_ENDPOINT_URL=os.environ.get("S3_ENDPOINT_URL") or None,
            S3_REGION=os.environ.get("S3_REGION") or None,
            S3_ACCESS_KEY_ID=os.environ.get("S3_ACCESS_KEY_ID") or None,
            S3_SECRET_ACCESS_KEY=os.environ.get("S3_SECRET_ACCESS_KEY") or None,
            S3_SESSION_TOKEN=os.environ.get("S3_SESSION_TOKEN") or None,
            S3_PATH_STYLE_ACCESS=_as_bool(
                os.environ.get("S3_PATH_STYLE_ACCESS"), cls.S3_PATH_STYLE_ACCESS
            ),
            S3_RETRY_AFTER_SECONDS=_as_float(os.environ.get("S3_RETRY_AFTER_SECONDS")),
            S3_BUCKET_OPTIONS=_as_json_object(
                "S3_BUCKET_OPTIONS", os.environ.get("S3_BUCKET_OPTIONS")
            ),
            READY_LOCATIONS=_as_list(os.environ.get("READY_LOCATIONS")),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
