from __future__ import annotations

import argparse
import dataclasses
import json
import os
from pathlib import Path

from .errors import ConfigError
from .git import DEFAULT_REF_PREFIXES
from .identity import IDENTITY_ID_OR_AUTHOR_TIME, IDENTITY_MODES
from .render import FORMATS

DEFAULT_CONFIG_NAME = "git-daily-stats.json"


def default_jobs() -> int:
    return max(1, min(8, (os.cpu_count() or 4)))


@dataclasses.dataclass(frozen=True)
class Settings:
    jobs: int = 1
    identity: str = IDENTITY_ID_OR_AUTHOR_TIME
    format: str = "text"
    ref_prefixes: tuple[str, ...] = DEFAULT_REF_PREFIXES


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read config {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")
    return data


def _choice(value: object, choices: tuple[str, ...], key: str) -> str:
    s = str(value or "").strip().lower()
    if s not in choices:
        raise ConfigError(f"Invalid {key}: {value!r} (expected one of {', '.join(choices)})")
    return s


def resolve_settings(args: argparse.Namespace, config: dict) -> Settings:
    """CLI flags win over config values, which win over defaults."""
    jobs_raw = args.jobs if getattr(args, "jobs", None) is not None else config.get("jobs", default_jobs())
    try:
        jobs = int(jobs_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid jobs: {jobs_raw!r}") from e
    if jobs < 1:
        raise ConfigError(f"Invalid jobs: {jobs_raw!r} (must be >= 1)")

    identity = _choice(getattr(args, "identity", None) or config.get("identity", IDENTITY_ID_OR_AUTHOR_TIME), IDENTITY_MODES, "identity")
    fmt = _choice(getattr(args, "format", None) or config.get("format", "text"), FORMATS, "format")

    prefixes_raw = config.get("ref_prefixes", list(DEFAULT_REF_PREFIXES))
    if not isinstance(prefixes_raw, list) or not all(isinstance(p, str) for p in prefixes_raw):
        raise ConfigError(f"Invalid ref_prefixes: {prefixes_raw!r} (expected a list of strings)")
    ref_prefixes = tuple(p.strip().rstrip("/") for p in prefixes_raw if p.strip())
    if not ref_prefixes:
        ref_prefixes = DEFAULT_REF_PREFIXES

    return Settings(jobs=jobs, identity=identity, format=fmt, ref_prefixes=ref_prefixes)
