from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from .oracle.retry import RetryPolicy
from .schemas import FieldAliases

CONFIG_ENV = "PROTEVOLVE_CONFIG"


# ---------------------------
# Service config (JSON file)
# ---------------------------


class AppConfig(BaseModel):
    """Service configuration loaded from a JSON file.

    Every section has defaults, so an absent config.json yields a working
    deployment against the public Gemini and RCSB endpoints.
    """

    # Allow `model_name` without pydantic's protected `model_` namespace warnings.
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    class OracleSettings(BaseModel):
        """Generative model endpoint. The credential itself never lives in the file."""

        model_config = ConfigDict(extra="forbid", protected_namespaces=())

        base_url: str = "https://generativelanguage.googleapis.com/v1beta"
        model_name: str = "gemini-2.5-flash-preview-05-20"
        api_key_env: str = "GEMINI_API_KEY"
        timeout_sec: float = Field(default=120.0, gt=0)

    class RetrySettings(BaseModel):
        model_config = ConfigDict(extra="forbid")

        max_attempts: int = Field(default=5, ge=1)
        base_delay_sec: float = Field(default=1.0, ge=0)
        multiplier: float = Field(default=2.0, ge=1)

        def policy(self) -> RetryPolicy:
            return RetryPolicy(
                max_attempts=self.max_attempts,
                base_delay=self.base_delay_sec,
                multiplier=self.multiplier,
            )

    class StructureSettings(BaseModel):
        """Ordered structure sources; `{pdb_id}` is replaced by the uppercased id."""

        model_config = ConfigDict(extra="forbid")

        sources: List[str] = Field(
            default_factory=lambda: [
                "https://files.rcsb.org/view/{pdb_id}.pdb",
                "https://models.rcsb.org/{pdb_id}.pdb",
            ],
            min_length=1,
        )
        timeout_sec: float = Field(default=30.0, gt=0)

    class UiDefaults(BaseModel):
        """Defaults used only by the UI to prefill its text boxes."""

        model_config = ConfigDict(extra="forbid")

        description: str = "An enzyme that can bind to and degrade PET plastic."
        feedback: str = "Improve binding affinity by 10%."

    oracle: OracleSettings = Field(default_factory=OracleSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    structures: StructureSettings = Field(default_factory=StructureSettings)
    ui_defaults: UiDefaults = Field(default_factory=UiDefaults)
    field_aliases: FieldAliases = Field(default_factory=FieldAliases)
    enable_ui: bool = True
    log_level: str = "INFO"


def find_default_config_path() -> Path:
    return Path(os.getenv(CONFIG_ENV) or "config.json")


def load_config(path: Path) -> AppConfig:
    data = json.loads(path.read_text(encoding="utf-8"))
    return AppConfig.model_validate(data)


def load_config_or_default(path: Optional[Path] = None) -> AppConfig:
    path = path or find_default_config_path()
    if not path.exists():
        return AppConfig()
    return load_config(path)


def resolve_api_key(cfg: AppConfig) -> str:
    return (os.getenv(cfg.oracle.api_key_env) or "").strip()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
