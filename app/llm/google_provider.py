"""
Google Gemini backend via the google-genai SDK.
Gemini accepts both images and PDFs as inline parts.
"""

from typing import Optional

from google import genai
from google.genai import types

from app.engines.base import is_image, is_pdf
from app.llm.base import LlmProvider
from app.llm.prompts import INVOICE_SYSTEM_PROMPT, QUERY_SYSTEM_PROMPT


class GoogleProvider(LlmProvider):
    provider_name = "google"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-pro",
        timeout_seconds: float = 60.0,
        max_tokens: int = 1000,
        client: Optional[genai.Client] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, max_tokens=max_tokens)
        self.model = model
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    async def _complete_invoice(self, image_bytes: bytes, content_type: str, prompt: str) -> str:
        contents: list = []
        if image_bytes and (is_image(content_type) or is_pdf(content_type)):
            contents.append(types.Part.from_bytes(data=image_bytes, mime_type=content_type.lower()))
        contents.append(prompt)

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=INVOICE_SYSTEM_PROMPT,
                temperature=0.1,
                max_output_tokens=self.max_tokens,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""

    async def _complete_query(self, query: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=query,
            config=types.GenerateContentConfig(
                system_instruction=QUERY_SYSTEM_PROMPT,
                temperature=0.3,
                max_output_tokens=self.max_tokens,
            ),
        )
        return response.text or ""
