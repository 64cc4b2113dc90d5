"""
SambaNova provider implementation.

SambaNova Cloud serves DeepSeek and gpt-oss models behind an
OpenAI-compatible endpoint.
"""

from typing import Any, Optional

import httpx

from chatrouter.models.openai_compatible_provider import OpenAICompatibleProvider

SAMBANOVA_BASE_URL = "https://api.sambanova.ai/v1"


class SambaNovaProvider(OpenAICompatibleProvider):
    label = "SambaNova"

    def __init__(
        self,
        api_key: str,
        base_url: str = SAMBANOVA_BASE_URL,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(
            name="sambanova",
            api_key=api_key,
            base_url=base_url,
            http_client=http_client,
        )

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "SambaNovaProvider":
        return cls(api_key=config.samba_key, **kwargs)
