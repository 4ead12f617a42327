from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsError(ValueError):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TASKMAP_",
        env_ignore_empty=True,
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    fallback_estimated_time: str = Field(default="1 hour", min_length=1)
    layout: Literal["tree", "radial"] = "tree"
    canvas_width: float = Field(default=1200, ge=0)
    canvas_height: float = Field(default=800, ge=0)

    # Sequencer timings, in seconds.
    particle_duration: float = Field(default=3.0, ge=0)
    glow_duration: float = Field(default=2.0, ge=0)
    handoff_delay: float = Field(default=0.5, ge=0)

    openai_model: str = Field(default="gpt-4.1-mini", min_length=1)
    editor_url: str = Field(default="http://localhost:3002", min_length=1)
    editor_timeout: float = Field(default=30.0, ge=0)
    log_level: str = Field(default="WARNING", min_length=1)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # TASKMAP_* env vars win over values passed in from the settings file.
        return (env_settings, init_settings)


def load_settings(path: str | Path | None = None) -> Settings:
    """Build settings from defaults, an optional YAML file, then TASKMAP_* env vars.

    Format of the YAML file:
      <setting_name>: <value>
    """
    values: dict[str, Any] = {}
    if path:
        p = Path(path)
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
        if raw is not None and not isinstance(raw, dict):
            raise SettingsError("settings file must be a mapping of name -> value")
        values.update({str(k): v for k, v in (raw or {}).items()})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise SettingsError(_describe(e)) from e


def model_for_role(role: str, default_model: str) -> str:
    """Return the model to use for a given role.

    Resolution order:
      1) OPENAI_MODEL_<ROLE>
      2) default_model
    """

    role_key = re.sub(r"[^A-Za-z0-9]+", "_", role).strip("_").upper()
    override = (os.getenv(f"OPENAI_MODEL_{role_key}", "") or "").strip()
    return override or default_model


def _describe(error: ValidationError) -> str:
    unknown: list[str] = []
    problems: list[str] = []
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"])
        if item["type"] == "extra_forbidden":
            unknown.append(name)
        else:
            problems.append(f"{name}: {item['msg']}")
    if unknown:
        problems.insert(0, f"unknown settings: {', '.join(sorted(unknown))}")
    return "; ".join(problems)
