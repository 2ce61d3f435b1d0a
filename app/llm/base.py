"""
LLM provider abstraction.

The invoice pipeline only ever talks to LlmProvider. Concrete backends
implement the two raw calls; this base class bounds them with a timeout,
parses the invoice JSON and turns every failure into LlmProviderError.
"""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod

import structlog

from app.llm.prompts import build_invoice_prompt, parse_analysis_response
from app.observability import metrics
from app.schemas.analysis import AnalysisResult

logger = structlog.get_logger(__name__)


class LlmProviderError(Exception):
    """Raised when an LLM call fails, times out or returns unusable output."""

    def __init__(self, provider_name: str, error_code: str, message: str):
        self.provider_name = provider_name
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{provider_name}] {error_code}: {message}")


class LlmResponseError(LlmProviderError):
    def __init__(self, provider_name: str, message: str):
        super().__init__(provider_name, "ERR_LLM_RESPONSE", message)


class LlmProvider(ABC):
    def __init__(self, timeout_seconds: float = 60.0, max_tokens: int = 1000):
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """'openai', 'anthropic', 'google', 'stub'"""
        ...

    @abstractmethod
    async def _complete_invoice(self, image_bytes: bytes, content_type: str, prompt: str) -> str:
        """Send the invoice prompt (and image, where supported); return raw text."""
        ...

    @abstractmethod
    async def _complete_query(self, query: str) -> str:
        ...

    async def _call(self, operation: str, coro) -> str:
        start = time.monotonic()
        outcome = "error"
        try:
            text = await asyncio.wait_for(coro, timeout=self.timeout_seconds)
            outcome = "ok"
            return text or ""
        except asyncio.TimeoutError as e:
            outcome = "timeout"
            raise LlmProviderError(
                self.provider_name, "ERR_LLM_TIMEOUT",
                f"{operation} did not finish within {self.timeout_seconds}s",
            ) from e
        except LlmProviderError:
            raise
        except Exception as e:
            raise LlmProviderError(
                self.provider_name, "ERR_LLM_REQUEST", f"{type(e).__name__}: {e}"
            ) from e
        finally:
            elapsed = time.monotonic() - start
            metrics.llm_request_duration_seconds.labels(
                provider=self.provider_name, operation=operation, outcome=outcome,
            ).observe(elapsed)
            logger.info("llm_call_finished", provider=self.provider_name, operation=operation,
                        outcome=outcome, duration_ms=int(elapsed * 1000))

    async def analyze_invoice(
        self,
        image_bytes: bytes,
        ocr_text: str,
        content_type: str = "image/png",
    ) -> AnalysisResult:
        raw = await self._call(
            "analyze_invoice",
            self._complete_invoice(image_bytes, content_type, build_invoice_prompt(ocr_text)),
        )
        result = parse_analysis_response(self.provider_name, raw)
        if result.confidence is not None:
            metrics.confidence_scores.labels(provider=self.provider_name).observe(float(result.confidence))
        return result

    async def process_query(self, query: str, user_id: uuid.UUID) -> str:
        """Free-text answer for the natural-language query feature."""
        logger.info("llm_query", provider=self.provider_name, user_id=str(user_id))
        return await self._call("process_query", self._complete_query(query))
