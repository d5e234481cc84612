"""Tag suggestions from a chat-completion endpoint."""

import logging
from typing import List, Optional

import httpx

from ..models.config import AppConfig, EnvSettings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an assistant that suggests relevant tags for web links."


def build_prompt(text: str) -> str:
    return (
        "Given the following text content from a web link (could be title, description, "
        "or fetched content), suggest 5-7 relevant, single-word or two-word (lowercase) tags, "
        "separated by commas. Only return the comma-separated tags and nothing else.\n\n"
        "Text Content:\n"
        f'"{text}"\n\n'
        "Suggested Tags:"
    )


def parse_tags(content: str) -> List[str]:
    """Split a comma-separated completion into lowercase tags.

    Example:
        " Python, Web Dev ,, " -> ["python", "web dev"]
    """
    tags = [tag.strip().lower() for tag in content.strip().split(",")]
    return [tag for tag in tags if tag]


def pick_suggestion_text(
    url: Optional[str] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> str:
    """Prefer the description, then the title, then the URL."""
    for candidate in (description, title, url):
        if candidate and candidate.strip():
            return candidate
    return ""


class TagSuggester:
    """Calls one configured chat-completion endpoint.

    Any misconfiguration or failure yields an empty list.
    """

    def __init__(
        self,
        config: AppConfig,
        env_settings: EnvSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.api_key = env_settings.ai_api_key
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.ai_endpoint and self.api_key)

    def _request_body(self, text: str) -> dict:
        return {
            "model": self.config.ai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(text)},
            ],
            "max_tokens": self.config.ai_max_tokens,
            "temperature": self.config.ai_temperature,
            "n": 1,
            "stop": None,
        }

    async def suggest_tags(self, text: str) -> List[str]:
        if not text.strip():
            return []

        if not self.is_configured:
            logger.error("AI endpoint or key is not configured")
            return []

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.ai_timeout_seconds, transport=self.transport
            ) as client:
                response = await client.post(
                    self.config.ai_endpoint, headers=headers, json=self._request_body(text)
                )

            if response.status_code >= 400:
                logger.error(
                    f"AI request failed with status {response.status_code}: {response.text[:500]}"
                )
                return []

            data = response.json()
            choices = data.get("choices") or []
            content = choices[0]["message"]["content"] if choices else None
        except Exception as e:
            logger.error(f"Error calling AI for tag suggestions: {e}")
            return []

        if not isinstance(content, str):
            logger.warning(f"Unexpected AI response shape: {data}")
            return []

        return parse_tags(content)
