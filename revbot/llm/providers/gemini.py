from __future__ import annotations

from typing import Any

import httpx

from revbot.config import DEFAULT_GEMINI_MODEL
from revbot.llm.types import ChatProvider, ChatResponse, UpstreamError
from revbot.persona import SYSTEM_PROMPT
from revbot.telemetry.logging import get_logger
from revbot.telemetry.tracing import get_tracer


class GeminiProvider(ChatProvider):
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        system_prompt: str = SYSTEM_PROMPT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._api_key = api_key
        self._model = model
        self._system_prompt = system_prompt
        self._logger = get_logger(__name__)
        self._tracer = get_tracer(__name__)
        self.name = "gemini"

    @property
    def model(self) -> str:
        return self._model

    async def chat(self, prompt: str) -> ChatResponse:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "systemInstruction": {"role": "system", "parts": [{"text": self._system_prompt}]},
        }
        with self._tracer.start_as_current_span("gemini.generate_content") as span:
            span.set_attribute("gemini.model", self._model)
            resp = await self._client.post(
                f"/models/{self._model}:generateContent",
                params={"key": self._api_key},
                json=payload,
            )
            span.set_attribute("http.status_code", resp.status_code)
        if resp.is_error:
            self._logger.error("gemini.chat.error", status=resp.status_code, model=self._model)
            raise UpstreamError(resp.status_code, resp.text)
        data = resp.json()
        return ChatResponse(
            text=self.extract_text(data),
            finish_reason=self._finish_reason(data),
            raw=data,
        )

    @staticmethod
    def extract_text(data: dict[str, Any]) -> str:
        """Join the text of every part in the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [str(part.get("text") or "") for part in parts if isinstance(part, dict)]
        return " ".join(texts).strip()

    @staticmethod
    def _finish_reason(data: dict[str, Any]) -> str | None:
        candidates = data.get("candidates") or []
        if not candidates:
            return None
        return candidates[0].get("finishReason")

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["GeminiProvider"]
