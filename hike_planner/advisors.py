"""Optional quality advisors: scenic classification and exit scoring.

Both are single-method capabilities. Callers own the deterministic
fallback, so an advisor may raise on any failure.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol

import requests

from hike_planner.config import (
    GEMINI_API_KEY,
    GEMINI_MODEL,
    GEMINI_TIMEOUT_S,
    GEMINI_URL,
    MAX_EXIT_SCORE,
    MIN_EXIT_SCORE,
)

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class ScenicClassifier(Protocol):
    def classify(self, name: str, description: Optional[str] = None) -> bool: ...


class ExitScorer(Protocol):
    def score(self, description: str) -> float: ...


class GeminiAdvisor:
    """Gemini ``generateContent`` client implementing both capabilities."""

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        timeout: float = GEMINI_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key is required (set GEMINI_API_KEY)")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def _generate(self, prompt: str, temperature: float) -> str:
        resp = self.session.post(
            GEMINI_URL.format(model=self.model),
            params={"key": self.api_key},
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": temperature, "maxOutputTokens": 5},
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"].strip()
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Unexpected Gemini response: {data!r}") from exc

    def classify(self, name: str, description: Optional[str] = None) -> bool:
        prompt = (
            'Is the following hiking trail likely to be scenic? Answer only "true" or "false".\n\n'
            f"Trail Name: {name}\nDescription: {description or 'No description provided.'}"
        )
        answer = self._generate(prompt, temperature=0).lower()
        logger.debug("Scenic classification for %s: %s", name, answer)
        return answer == "true"

    def score(self, description: str) -> float:
        prompt = (
            "Based on the following scenario, provide a safety and convenience score "
            f"from {MIN_EXIT_SCORE} to {MAX_EXIT_SCORE}. Higher is better. "
            f"Return ONLY the number. Scenario: {description}"
        )
        answer = self._generate(prompt, temperature=0.1)
        match = _NUMBER_RE.search(answer)
        if match is None:
            raise ValueError(f"Gemini returned no score: {answer!r}")
        return float(max(MIN_EXIT_SCORE, min(MAX_EXIT_SCORE, float(match.group()))))
