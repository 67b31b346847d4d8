from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from validator import DomainRules


class Config(BaseSettings):
    """Centralized, type-safe configuration loaded from environment variables.

    Uses pydantic-settings to support .env files and runtime validation.
    """

    # Remote index service
    API_URL: str = Field(
        default="https://gif-search.woodie.dev",
        description="Base URL of the remote index/search service.",
    )

    REQUEST_TIMEOUT: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds. None leaves requests outstanding until cancelled.",
    )

    # Identity
    USER_KEY: str | None = Field(
        default=None,
        description="32-char index key. When unset the key store entry for ACCOUNT is used.",
    )

    ACCOUNT: str = Field(
        default="default",
        description="Account identity; switching it resets sync state.",
    )

    KEYS_PATH: str = Field(
        default="./favsearch_keys.yaml",
        description="YAML file mapping account -> user key.",
    )

    # Ranking
    MODEL_WEIGHTS: Annotated[dict[str, float], NoDecode] = Field(
        default_factory=lambda: {"0": 0.5, "1": 0.5},
        description="Per-model ranking weight in [0, 1] (dict, JSON object, or 'id=weight' CSV).",
    )

    DEFAULT_MODEL_WEIGHT: float = Field(default=0.5, ge=0.0, le=1.0)

    LOWER_SCORE_IS_BETTER: bool = Field(
        default=True,
        description="Whether the search service's raw scores are distances (lower = better).",
    )

    SEARCH_K: int | None = Field(default=None, ge=1, description="Optional result limit sent to /search.")

    DEBOUNCE_SECONDS: float = Field(default=0.3, ge=0.0, le=10.0)

    # Item validation
    ALLOWED_DOMAIN_SUFFIXES: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [".discordapp.net"])
    ALLOWED_HOSTS: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["media.tenor.co"])

    LOG_LEVEL: str = Field(default="WARNING")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("API_URL")
    @classmethod
    def normalize_api_url(cls, value: str) -> str:
        value = value.strip()
        if value.endswith("/"):
            value = value[:-1]
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("API_URL must be a valid http(s) URL")
        return value

    @field_validator("USER_KEY", mode="before")
    @classmethod
    def blank_key_is_none(cls, v):  # type: ignore[no-redef]
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("KEYS_PATH")
    @classmethod
    def normalize_keys_path(cls, v: str) -> str:
        """
        Normalize KEYS_PATH to an absolute path.

        Relative paths are resolved from the project root (where config.py lives),
        so the CLI finds the same key regardless of the working directory.
        """
        path = Path(v).expanduser()
        if not path.is_absolute():
            path = (Path(__file__).parent / path).resolve()
        else:
            path = path.resolve()
        return str(path)

    @field_validator("MODEL_WEIGHTS", mode="before")
    @classmethod
    def parse_model_weights(cls, v):  # type: ignore[no-redef]
        """
        Accept a mapping, a JSON object string, or 'id=weight' pairs separated by commas.

        Examples:
            - {"0": 0.5} -> {"0": 0.5}
            - '{"0": 1, "1": 0}' -> {"0": 1.0, "1": 0.0}
            - "0=0.7,1=0.2" -> {"0": 0.7, "1": 0.2}
        """
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("{"):
                v = json.loads(s)
            else:
                pairs: dict[str, str] = {}
                for part in s.split(","):
                    if not part.strip():
                        continue
                    key, sep, raw = part.partition("=")
                    if not sep:
                        raise ValueError(f"MODEL_WEIGHTS entry must look like id=weight, got {part!r}")
                    pairs[key.strip()] = raw.strip()
                v = pairs
        if not isinstance(v, dict):
            raise ValueError("MODEL_WEIGHTS must be a mapping of model id to weight")
        return {str(k).strip(): float(w) for k, w in v.items()}

    @field_validator("MODEL_WEIGHTS")
    @classmethod
    def check_weight_range(cls, v: dict[str, float]) -> dict[str, float]:
        for model_id, weight in v.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(f"weight for model {model_id} must be within [0, 1], got {weight}")
        return v

    @field_validator("ALLOWED_DOMAIN_SUFFIXES", "ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_list(cls, v):  # type: ignore[no-redef]
        """Accept list[str], JSON array string, or comma-separated string."""
        if v is None or v == "":
            return []
        if isinstance(v, list):
            return [str(s).strip() for s in v if str(s).strip()]
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                try:
                    arr = json.loads(s)
                    return [str(x).strip() for x in arr if str(x).strip()]
                except json.JSONDecodeError:
                    pass
            return [p.strip() for p in s.split(",") if p.strip()]
        return [str(v).strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    # Convenience helpers
    @property
    def keys_path(self) -> Path:
        return Path(self.KEYS_PATH)

    @property
    def validation_rules(self) -> DomainRules:
        return DomainRules(
            suffixes=tuple(self.ALLOWED_DOMAIN_SUFFIXES),
            hosts=tuple(self.ALLOWED_HOSTS),
        )

    @property
    def enabled_models(self) -> list[str]:
        return [model_id for model_id, weight in self.MODEL_WEIGHTS.items() if weight > 0]


# Eagerly load configuration at import time for convenience across modules
config = Config()
