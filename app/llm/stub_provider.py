"""
Deterministic provider for local development and tests.
No network access; answers with a canned JSON document.
"""

import json
from collections import deque
from typing import Optional

from app.llm.base import LlmProvider

# Only the most recent requests are kept for inspection
MAX_RECORDED_CALLS = 50

DEFAULT_STUB_RESPONSE = {
    "vendorName": None,
    "totalAmount": None,
    "currency": None,
    "confidence": 0.0,
    "lineItems": [],
}


class StubProvider(LlmProvider):
    provider_name = "stub"

    def __init__(self, response: Optional[dict] = None, query_answer: str = "", **kwargs):
        super().__init__(**kwargs)
        self.response = response if response is not None else dict(DEFAULT_STUB_RESPONSE)
        self.query_answer = query_answer
        self.calls: deque[dict] = deque(maxlen=MAX_RECORDED_CALLS)

    async def _complete_invoice(self, image_bytes: bytes, content_type: str, prompt: str) -> str:
        self.calls.append({"content_type": content_type, "size": len(image_bytes or b""), "prompt": prompt})
        return json.dumps(self.response, default=str)

    async def _complete_query(self, query: str) -> str:
        return self.query_answer
