"""
Configuration loader for the response router.

The configuration is stored in a YAML file. Sensitive values like API
keys are not stored in the YAML file; instead, the file names the
environment variables that hold them, and they are read when the
configuration is loaded.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from chatrouter.core.catalog import (
    DEFAULT_GOOGLE_MODELS,
    DEFAULT_OPENROUTER_MODELS,
    DEFAULT_SAMBA_MODELS,
)
from chatrouter.core.prompts import DEFAULT_SYSTEM_PROMPT


@dataclass
class AppConfig:
    """
    Credentials, model lists and prompt settings.

    The router never modifies it.
    """

    google_keys: List[str] = field(default_factory=list)
    openrouter_key: str = ""
    samba_key: str = ""
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    google_models: List[str] = field(default_factory=lambda: list(DEFAULT_GOOGLE_MODELS))
    openrouter_models: List[str] = field(default_factory=lambda: list(DEFAULT_OPENROUTER_MODELS))
    samba_models: List[str] = field(default_factory=lambda: list(DEFAULT_SAMBA_MODELS))
    include_date: bool = False
    include_time: bool = False
    memories: List[str] = field(default_factory=list)
    app_url: str = ""
    app_title: str = "chatrouter"

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], environ: Optional[Dict[str, str]] = None
    ) -> "AppConfig":
        """
        Build an AppConfig from a parsed configuration mapping.

        Args:
            data: The mapping loaded from YAML.
            environ: Environment to read API keys from (defaults to os.environ).
        """
        env = os.environ if environ is None else environ
        providers = data.get("providers", {}) or {}
        google_cfg = providers.get("google", {}) or {}
        openrouter_cfg = providers.get("openrouter", {}) or {}
        samba_cfg = providers.get("sambanova", {}) or {}
        prompts_cfg = data.get("prompts", {}) or {}
        app_cfg = data.get("app", {}) or {}

        google_keys = _split_keys(env.get(google_cfg.get("api_keys_env", "GOOGLE_API_KEYS"), ""))

        return cls(
            google_keys=google_keys,
            openrouter_key=env.get(openrouter_cfg.get("api_key_env", "OPENROUTER_API_KEY"), "").strip(),
            samba_key=env.get(samba_cfg.get("api_key_env", "SAMBANOVA_API_KEY"), "").strip(),
            system_prompt=prompts_cfg.get("system", DEFAULT_SYSTEM_PROMPT),
            google_models=list(google_cfg.get("models") or DEFAULT_GOOGLE_MODELS),
            openrouter_models=list(openrouter_cfg.get("models") or DEFAULT_OPENROUTER_MODELS),
            samba_models=list(samba_cfg.get("models") or DEFAULT_SAMBA_MODELS),
            include_date=bool(prompts_cfg.get("include_date", False)),
            include_time=bool(prompts_cfg.get("include_time", False)),
            memories=[str(m) for m in data.get("memories") or []],
            app_url=app_cfg.get("url", ""),
            app_title=app_cfg.get("title", "chatrouter"),
        )


def _split_keys(raw: str) -> List[str]:
    return [k.strip() for k in raw.split(",") if k.strip()]


def load_app_config(path: str) -> AppConfig:
    """
    Load the application configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        An AppConfig with API keys resolved from the environment.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the top-level configuration is not a mapping.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError("Top-level configuration must be a mapping/dictionary.")

    return AppConfig.from_dict(data)
