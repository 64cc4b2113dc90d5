"""
OpenRouter provider implementation.

OpenRouter model ids are free-form (`vendor/model-name[:free]`) and
requests carry attribution headers identifying the calling app.
"""

from typing import Any, Dict, Optional

import httpx

from chatrouter.models.openai_compatible_provider import OpenAICompatibleProvider

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def short_model_name(model: str) -> str:
    """`vendor/model-name:free` -> `model-name`."""
    if "/" in model:
        return model.split("/")[-1].replace(":free", "") or model
    return model


class OpenRouterProvider(OpenAICompatibleProvider):
    """
    OpenRouterProvider uses OpenRouter's OpenAI-compatible Chat Completions API.
    """

    label = "OpenRouter"

    def __init__(
        self,
        api_key: str,
        app_url: str = "",
        app_title: str = "",
        base_url: str = OPENROUTER_BASE_URL,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        headers: Dict[str, str] = {}
        if app_url:
            headers["HTTP-Referer"] = app_url
        if app_title:
            headers["X-Title"] = app_title
        super().__init__(
            name="openrouter",
            api_key=api_key,
            base_url=base_url,
            default_headers=headers,
            http_client=http_client,
        )

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "OpenRouterProvider":
        return cls(
            api_key=config.openrouter_key,
            app_url=config.app_url,
            app_title=config.app_title,
            **kwargs,
        )

    def display_model(self, model: str) -> str:
        return short_model_name(model)
