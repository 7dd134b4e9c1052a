"""
Runtime settings and logging setup.

Resolution order for each setting:
1. Explicit keyword argument to Settings.from_env
2. Environment variable (ALLERGEN_ALERT_<KEY>, OPENAI_API_KEY for the key)
3. Default value

A .env file in the working directory is loaded first when present.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "ALLERGEN_ALERT_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.1
    lookup_timeout: float = 15.0
    analysis_timeout: float = 30.0
    max_tool_rounds: int = 2
    ground_results: bool = True
    profile_path: Path = Path("db/profile.json")
    user_agent: str = "AllergenAlert/1.0 (python-requests) - OpenFoodFacts client"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        load_dotenv()
        values = {}
        for f in fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None:
                values[f.name] = _coerce(raw, f.default)
        if "openai_api_key" not in values and os.environ.get("OPENAI_API_KEY"):
            values["openai_api_key"] = os.environ["OPENAI_API_KEY"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _coerce(raw: str, default):
    """Convert an environment string to the type of the field default."""
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, Path):
        return Path(raw)
    return raw


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for CLI and server entry points."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
