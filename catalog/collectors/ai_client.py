"""
AI model and sentiment API client.

- Gemini ``generateContent`` for short classification answers
  (price category, "is this page about this device", nits lookup)
- Natural Language ``analyzeSentiment`` for review text

Failures map onto the catalog taxonomy: a missing key is
CreatingAIClientError, transport failures AINetworkError, answers in
the wrong format FailedAIInstructionError and sentiment API failures
SentimentAnalysisError.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from django.conf import settings

from catalog.constants import PriceCategory
from catalog.exceptions import (
    AINetworkError,
    CreatingAIClientError,
    FailedAIInstructionError,
    SentimentAnalysisError,
)

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
SENTIMENT_ENDPOINT = "https://language.googleapis.com/v1/documents:analyzeSentiment"

PRICE_CATEGORY_INSTRUCTION = (
    'You receive a phone model in the form "[brand] [phone name]" and you return a '
    "classification in terms of launch price range (LOW_END, LOW_MID_RANGE, "
    "HIGH_MID_RANGE, HIGH_END) and nothing further."
)
NITS_INSTRUCTION = (
    "You're given a phone model, and you need to output how many nits at max "
    "brightness its display has. If you don't know output 0. Output just a number."
)


@dataclass
class SentimentResult:
    """Document sentiment: score in -1..1 and magnitude in 0..inf."""

    score: float
    magnitude: float


class AIClient:
    """
    Synchronous client for the generative model and the sentiment API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        sentiment_api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key (defaults to settings.GEMINI_API_KEY)
            sentiment_api_key: Natural Language API key (defaults to settings.NATURAL_LANGUAGE_API_KEY)
            model: Gemini model name (defaults to settings.GEMINI_MODEL)
            timeout: Request timeout in seconds
            client: Pre-built httpx client
        """
        self.api_key = api_key or getattr(settings, "GEMINI_API_KEY", "")
        self.sentiment_api_key = sentiment_api_key or getattr(
            settings, "NATURAL_LANGUAGE_API_KEY", ""
        )
        self.model = model or getattr(settings, "GEMINI_MODEL", "gemini-1.5-flash")
        self.timeout = timeout if timeout is not None else getattr(settings, "DEVICE_CATALOG_REQUEST_TIMEOUT", 20)
        self._client = client or httpx.Client(timeout=self.timeout)

    def _post(self, url: str, key: str, payload: Dict[str, Any], ctx) -> Dict[str, Any]:
        ctx.check("AI request")
        if not key:
            raise CreatingAIClientError("AI API key is not configured")

        try:
            response = self._client.post(url, params={"key": key}, json=payload)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            logger.error(f"AI request timeout: {e}")
            raise AINetworkError(f"request timeout after {self.timeout}s") from e

        except httpx.HTTPStatusError as e:
            logger.error(f"AI request HTTP error: {e}")
            raise AINetworkError(f"HTTP error {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.error(f"AI request connection error: {e}")
            raise AINetworkError(f"connection error: {e}") from e

        except ValueError as e:
            raise AINetworkError(f"invalid JSON response: {e}") from e

    def generate(self, instruction: str, prompt: str, ctx) -> str:
        """
        Ask the model for a short answer.

        Returns:
            The answer text, stripped of whitespace and quotes
        """
        payload = {
            "systemInstruction": {"parts": [{"text": instruction}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0},
        }
        data = self._post(GEMINI_ENDPOINT.format(model=self.model), self.api_key, payload, ctx)

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.warning(f"Unexpected model response shape: {str(data)[:200]}")
            raise FailedAIInstructionError("model returned no answer") from e

        return text.strip().strip('"').strip()

    def ask_bool(self, instruction: str, prompt: str, ctx) -> bool:
        answer = self.generate(instruction, prompt, ctx).upper()
        if answer in ("TRUE", "FALSE"):
            return answer == "TRUE"
        raise FailedAIInstructionError(f"expected TRUE or FALSE, got {answer[:50]!r}")

    def ask_int(self, instruction: str, prompt: str, ctx) -> int:
        answer = self.generate(instruction, prompt, ctx)
        match = re.search(r"\d+", answer.replace(",", ""))
        if match is None:
            raise FailedAIInstructionError(f"expected a number, got {answer[:50]!r}")
        return int(match.group())

    def classify_price_category(self, full_name: str, ctx) -> int:
        """Launch price bracket of a device as a PriceCategory value."""
        answer = self.generate(PRICE_CATEGORY_INSTRUCTION, full_name, ctx).upper()
        try:
            return PriceCategory[answer].value
        except KeyError:
            raise FailedAIInstructionError(
                f"model did not return a price category for {full_name}: {answer[:50]!r}",
                device_name=full_name,
            ) from None

    def lookup_nits(self, full_name: str, ctx) -> int:
        return self.ask_int(NITS_INSTRUCTION, full_name, ctx)

    def is_matching_page(self, instruction: str, full_name: str, description: str, ctx) -> bool:
        """Whether a search hit (title + snippet) is about the given device."""
        return self.ask_bool(instruction, f"{full_name}\n{description}", ctx)

    def analyze_sentiment(self, text: str, ctx) -> SentimentResult:
        payload = {
            "document": {"type": "PLAIN_TEXT", "content": text},
            "encodingType": "UTF8",
        }
        try:
            data = self._post(SENTIMENT_ENDPOINT, self.sentiment_api_key, payload, ctx)
        except AINetworkError as e:
            raise SentimentAnalysisError(f"sentiment request failed: {e}") from e

        try:
            sentiment = data["documentSentiment"]
            return SentimentResult(
                score=float(sentiment["score"]),
                magnitude=float(sentiment["magnitude"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SentimentAnalysisError("sentiment response missing documentSentiment") from e

    def close(self) -> None:
        self._client.close()
