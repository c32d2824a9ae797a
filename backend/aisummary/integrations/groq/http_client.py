"""
Low-level HTTP client for Groq's OpenAI-compatible chat-completions endpoint
  - bearer auth, (connect, read) timeouts
  - one request per call: no retry here, the caller owns the retry policy
  - transport / status / payload failures become GenerationError
"""

from __future__ import annotations
import logging, time, requests
from typing import Any, Dict, List, Optional

from aisummary.core.config import settings
from aisummary.core.errors import GenerationError

logger = logging.getLogger(__name__)


class GroqHttpClient:

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        key: Any = api_key or settings.GROQ_API_KEY
        if hasattr(key, "get_secret_value"):
            key = key.get_secret_value()
        self.api_key = key
        self.base_url = (base_url or settings.GROQ_BASE_URL).rstrip("/")
        self.model = model or settings.GROQ_MODEL
        self.connect_timeout = connect_timeout or settings.GROQ_CONNECT_TIMEOUT
        self.read_timeout = read_timeout or settings.GROQ_READ_TIMEOUT
        self._session = session or requests.Session()


    # ---------- Public ----------
    def chat_json(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        POST /chat/completions with response_format=json_object.
        Returns choices[0].message.content (a JSON document as text).
        """
        if not self.api_key:
            raise GenerationError("GROQ_API_KEY is not configured")

        body = {
            "model": self.model,
            "messages": messages,
            "temperature": settings.GROQ_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or settings.GROQ_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        start = time.perf_counter()
        try:
            resp = self._session.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers=headers,
                timeout=(self.connect_timeout, self.read_timeout),
            )
        except requests.RequestException as e:
            logger.warning("groq.request_exception model=%s err=%s", self.model, type(e).__name__)
            raise GenerationError(f"generation request failed: {e}") from e

        latency_ms = int((time.perf_counter() - start) * 1000)
        if resp.status_code >= 400:
            snippet = (resp.text or "")[:300]  # truncated, keeps logs small
            logger.warning("groq.http_error status=%s latency_ms=%s body=%s", resp.status_code, latency_ms, snippet)
            raise GenerationError(f"generation service returned {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError(f"non-JSON response (status={resp.status_code})") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("response has no choices[0].message.content") from e

        if not content or not isinstance(content, str):
            raise GenerationError("empty response from generation service")

        usage = data.get("usage") or {}
        logger.info("groq.ok model=%s latency_ms=%s total_tokens=%s", self.model, latency_ms, usage.get("total_tokens"))
        return content
