"""
Model catalog.

Holds the auto-mode strategies and the default model lists, and
resolves a requested model identifier into exactly one route. The
route is decided once here; the rest of the call chain dispatches on
its type instead of re-inspecting the model name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from chatrouter.models.openrouter_provider import short_model_name

GOOGLE = "google"
OPENROUTER = "openrouter"
SAMBANOVA = "sambanova"

SEARCH_MODE = "auto-search"

SAMBA_MODEL_PATTERN = re.compile(r"^(DeepSeek-|gpt-oss-)")


@dataclass(frozen=True)
class AutoModeConfig:
    """
    A named fallback strategy.

    An empty `models` tuple means the candidate list is resolved from
    the application config at call time.
    """

    label: str
    description: str
    provider: str
    models: Tuple[str, ...] = ()


AUTO_MODES: Dict[str, AutoModeConfig] = {
    "auto-gemini-flash": AutoModeConfig(
        label="Gemini Fast",
        description="Flash models · auto-fallback",
        provider=GOOGLE,
        models=(
            "gemini-flash-latest",
            "gemini-3-flash-preview",
            "gemini-2.5-flash",
            "gemini-2.0-flash",
        ),
    ),
    "auto-gemini-pro": AutoModeConfig(
        label="Gemini Pro",
        description="Pro models · best quality",
        provider=GOOGLE,
        models=("gemini-3-pro-preview", "gemini-2.5-pro"),
    ),
    "auto-openrouter": AutoModeConfig(
        label="OpenRouter",
        description="Random free model",
        provider=OPENROUTER,
    ),
    "auto-samba": AutoModeConfig(
        label="SambaNova",
        description="Fast inference · auto-fallback",
        provider=SAMBANOVA,
        models=("DeepSeek-R1-0528", "DeepSeek-V3.1", "DeepSeek-V3-0324", "gpt-oss-120b"),
    ),
    SEARCH_MODE: AutoModeConfig(
        label="AI Search",
        description="Google Search · grounded answers",
        provider=GOOGLE,
    ),
}

SHORT_NAMES = {
    "auto-gemini-flash": "Auto: Flash",
    "auto-gemini-pro": "Auto: Pro",
    "auto-openrouter": "Auto: OpenRouter",
    "auto-samba": "Auto: Samba",
    SEARCH_MODE: "AI Search",
}

DEFAULT_GOOGLE_MODELS = [
    "gemini-2.0-flash",
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-3-flash-preview",
    "gemini-3-pro-preview",
]

DEFAULT_OPENROUTER_MODELS = [
    "deepseek/deepseek-r1-0528:free",
    "tngtech/deepseek-r1t2-chimera:free",
]

DEFAULT_SAMBA_MODELS = [
    "DeepSeek-R1-0528",
    "DeepSeek-V3-0324",
    "DeepSeek-V3.1",
    "gpt-oss-120b",
]

# Models that accept the google_search tool, in order of preference.
SEARCH_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash")

# Knowledge-only fallback for search mode when grounding is unavailable.
SEARCH_FALLBACK_SAMBA_MODELS = ("DeepSeek-V3.1", "DeepSeek-V3-0324", "gpt-oss-120b")


@dataclass(frozen=True)
class GoogleModel:
    name: str


@dataclass(frozen=True)
class SambaNovaModel:
    name: str


@dataclass(frozen=True)
class OpenRouterModel:
    name: str


@dataclass(frozen=True)
class AutoStrategy:
    key: str
    config: AutoModeConfig

    @property
    def is_search(self) -> bool:
        return self.key == SEARCH_MODE


ModelRoute = Union[GoogleModel, SambaNovaModel, OpenRouterModel, AutoStrategy]


def is_auto_mode(model: str) -> bool:
    return model in AUTO_MODES


def resolve_model(model: str) -> ModelRoute:
    """
    Map a model identifier to its route.

    OpenRouter ids are free-form, so anything that is neither an auto
    mode, a Gemini model nor a SambaNova model goes to OpenRouter.
    """
    if is_auto_mode(model):
        return AutoStrategy(key=model, config=AUTO_MODES[model])
    if model.startswith("gemini"):
        return GoogleModel(model)
    if SAMBA_MODEL_PATTERN.match(model):
        return SambaNovaModel(model)
    return OpenRouterModel(model)


def provider_for(model: str) -> str:
    route = resolve_model(model)
    if isinstance(route, AutoStrategy):
        return route.config.provider
    if isinstance(route, GoogleModel):
        return GOOGLE
    if isinstance(route, SambaNovaModel):
        return SAMBANOVA
    return OPENROUTER


def get_model_short_name(model: str) -> str:
    if model in SHORT_NAMES:
        return SHORT_NAMES[model]
    return short_model_name(model)
