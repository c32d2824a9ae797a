"""
AI summary generation: one product title + description in, an enhanced title and
a two-sentence description out.

Output contract (anything else is a GenerationError, never a partial summary):
  - enhancedDescription present, non-empty, exactly GENERATION_SENTENCES sentences,
    at most GENERATION_MAX_WORDS words
  - enhancedTitle missing -> the input title is used
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from aisummary.core.config import settings
from aisummary.core.errors import GenerationError
from aisummary.infrastructure.ratelimit import RedisTokenBucketLimiter
from aisummary.integrations.groq import GroqHttpClient


logger = logging.getLogger(__name__)

# one in-flight generation call per process
_GENERATION_LOCK = threading.Lock()

# a sentence ends at . ! or ? (optionally followed by closing quotes/brackets) then whitespace or end
_SENTENCE_END_RE = re.compile(r"[.!?]+[\"')\]]*(?=\s|$)")


@dataclass(frozen=True, slots=True)
class GeneratedSummary:
    enhanced_title: str
    enhanced_description: str
    original_title: str
    original_description: str


class _SummaryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enhancedTitle: Optional[str] = None
    enhancedDescription: Optional[str] = None


class ChatClient(Protocol):
    def chat_json(self, messages, *, temperature=None, max_tokens=None) -> str: ...


PROMPT_TEMPLATE = """You are a product summarizer. Create a concise, engaging {sentences}-sentence product summary.

Product: {title}
Details: {description}

Requirements:
- Write EXACTLY {sentences} sentences (not {sentences} lines)
- Keep it descriptive but concise (around 25-35 words total, never more than {max_words})
- Make the title more compelling and unique (different from the original title)
- Include specific details about materials, design, or features
- End with how it enhances the buyer's style or everyday use

Return ONLY JSON:
{{
  "enhancedTitle": "A compelling, unique title (NOT the same as the original)",
  "enhancedDescription": "Your {sentences}-sentence summary here"
}}"""


def build_prompt(title: str, description: str) -> str:
    return PROMPT_TEMPLATE.format(
        title=title,
        description=description or "Basic product",
        sentences=settings.GENERATION_SENTENCES,
        max_words=settings.GENERATION_MAX_WORDS,
    )


def count_sentences(text: str) -> int:
    stripped = (text or "").strip()
    if not stripped:
        return 0
    ends = len(_SENTENCE_END_RE.findall(stripped))
    # trailing fragment without terminal punctuation still counts as a sentence
    tail = _SENTENCE_END_RE.split(stripped)[-1].strip()
    return ends + (1 if tail else 0)


def count_words(text: str) -> int:
    return len((text or "").split())


def parse_generation_output(raw: Optional[str], title: str, description: str) -> GeneratedSummary:
    """
    Validate a raw JSON response against the output contract.
    """
    if not raw or not raw.strip():
        raise GenerationError("no response from generation service")

    try:
        payload = _SummaryPayload.model_validate_json(raw)
    except PydanticValidationError as e:
        raise GenerationError(f"generation response is not a valid JSON object: {e.errors()[:1]}") from e

    summary = (payload.enhancedDescription or "").strip()
    if not summary:
        raise GenerationError("generation response has no enhancedDescription")

    sentences = count_sentences(summary)
    if sentences != settings.GENERATION_SENTENCES:
        raise GenerationError(
            f"enhancedDescription has {sentences} sentences, expected {settings.GENERATION_SENTENCES}"
        )
    words = count_words(summary)
    if words > settings.GENERATION_MAX_WORDS:
        raise GenerationError(f"enhancedDescription has {words} words, limit {settings.GENERATION_MAX_WORDS}")

    enhanced_title = (payload.enhancedTitle or "").strip() or title
    if enhanced_title == title:
        logger.warning("generation.title_unchanged title=%r", title)

    return GeneratedSummary(
        enhanced_title=enhanced_title,
        enhanced_description=summary,
        original_title=title,
        original_description=description,
    )


class SummaryGenerator:
    """
    One generation-service call per generate(); no retry. Calls are serialized
    by a process-wide lock and, when enabled, paced by the global Redis token bucket.
    """

    def __init__(
        self,
        client: Optional[ChatClient] = None,
        limiter: Optional[RedisTokenBucketLimiter] = None,
    ) -> None:
        self.client = client or GroqHttpClient()
        self.limiter = limiter if limiter is not None else RedisTokenBucketLimiter.from_settings(vendor="groq")

    def generate(self, title: str, description: Optional[str]) -> GeneratedSummary:
        title = title or ""
        description = description or ""
        if not title.strip():
            raise GenerationError("cannot generate a summary for a product without a title")

        messages = [{"role": "user", "content": build_prompt(title, description)}]
        with _GENERATION_LOCK:
            if self.limiter is not None:
                try:
                    self.limiter.acquire()
                except RedisError as e:
                    raise GenerationError(f"rate limiter unavailable: {e}") from e
            raw = self.client.chat_json(
                messages,
                temperature=settings.GROQ_TEMPERATURE,
                max_tokens=settings.GROQ_MAX_TOKENS,
            )

        result = parse_generation_output(raw, title, description)
        logger.info("generation.ok title=%r words=%s", title, count_words(result.enhanced_description))
        return result
