"""
OpenAI chat-completions backend.
Images are sent inline as a base64 data URI next to the OCR text.
"""

import base64
from typing import Optional

from openai import AsyncOpenAI

from app.engines.base import is_image
from app.llm.base import LlmProvider
from app.llm.prompts import INVOICE_SYSTEM_PROMPT, QUERY_SYSTEM_PROMPT


class OpenAiProvider(LlmProvider):
    provider_name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o",
        timeout_seconds: float = 60.0,
        max_tokens: int = 1000,
        max_retries: int = 2,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, max_tokens=max_tokens)
        self.model = model
        self.client = client or AsyncOpenAI(
            api_key=api_key, timeout=timeout_seconds, max_retries=max_retries,
        )

    async def _complete_invoice(self, image_bytes: bytes, content_type: str, prompt: str) -> str:
        content: list[dict] = [{"type": "text", "text": prompt}]
        if image_bytes and is_image(content_type):
            encoded = base64.b64encode(image_bytes).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{content_type};base64,{encoded}"},
            })

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": INVOICE_SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
            temperature=0.1,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""

    async def _complete_query(self, query: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": QUERY_SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            temperature=0.3,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""
