"""
Anthropic messages-API backend.
"""

import base64
from typing import Optional

import anthropic

from app.engines.base import is_image, is_pdf
from app.llm.base import LlmProvider
from app.llm.prompts import INVOICE_SYSTEM_PROMPT, QUERY_SYSTEM_PROMPT

# Raster formats the messages API accepts as image blocks
SUPPORTED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def _text_of(response) -> str:
    return "".join(block.text for block in response.content if getattr(block, "type", None) == "text")


class AnthropicProvider(LlmProvider):
    provider_name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-3-5-sonnet-latest",
        timeout_seconds: float = 60.0,
        max_tokens: int = 1000,
        max_retries: int = 2,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, max_tokens=max_tokens)
        self.model = model
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=max_retries,
        )

    def _source_block(self, data: bytes, content_type: str) -> Optional[dict]:
        if not data:
            return None
        encoded = base64.b64encode(data).decode("ascii")
        if is_image(content_type) and content_type.lower() in SUPPORTED_IMAGE_TYPES:
            return {"type": "image",
                    "source": {"type": "base64", "media_type": content_type.lower(), "data": encoded}}
        if is_pdf(content_type):
            return {"type": "document",
                    "source": {"type": "base64", "media_type": "application/pdf", "data": encoded}}
        return None

    async def _complete_invoice(self, image_bytes: bytes, content_type: str, prompt: str) -> str:
        content: list[dict] = []
        source = self._source_block(image_bytes, content_type)
        if source:
            content.append(source)
        content.append({"type": "text", "text": prompt})

        response = await self.client.messages.create(
            model=self.model,
            system=INVOICE_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": content}],
            max_tokens=self.max_tokens,
            temperature=0.1,
        )
        return _text_of(response)

    async def _complete_query(self, query: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            system=QUERY_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": query}],
            max_tokens=self.max_tokens,
            temperature=0.3,
        )
        return _text_of(response)
