"""Tests for the Gemini-backed scenic classifier and exit scorer."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from hike_planner.advisors import GeminiAdvisor


def _session(text: str | None = None, payload: dict | None = None) -> MagicMock:
    session = MagicMock()
    resp = MagicMock()
    resp.json.return_value = payload if payload is not None else {
        "candidates": [{"content": {"parts": [{"text": text}]}}]
    }
    session.post.return_value = resp
    return session


class TestGeminiAdvisor:
    def test_requires_key(self):
        with pytest.raises(ValueError, match="API key"):
            GeminiAdvisor(api_key="")

    def test_request_shape(self):
        session = _session("true")
        advisor = GeminiAdvisor(api_key="k", model="gemini-test", timeout=3, session=session)
        advisor.classify("Bayview Ridge", "Ridge walk with bay views.")

        args, kwargs = session.post.call_args
        assert "models/gemini-test:generateContent" in args[0]
        assert kwargs["params"] == {"key": "k"}
        assert kwargs["timeout"] == 3
        prompt = kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "Trail Name: Bayview Ridge" in prompt
        assert "Ridge walk with bay views." in prompt

    @pytest.mark.parametrize("answer,expected", [
        ("true", True),
        ("True", True),
        ("false", False),
        ("maybe", False),
    ])
    def test_classify(self, answer, expected):
        advisor = GeminiAdvisor(api_key="k", session=_session(answer))
        assert advisor.classify("Trail") is expected

    def test_classify_without_description(self):
        session = _session("false")
        GeminiAdvisor(api_key="k", session=session).classify("Trail")
        prompt = session.post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "No description provided." in prompt

    @pytest.mark.parametrize("answer,expected", [
        ("85", 85.0),
        ("Score: 42.5", 42.5),
        ("250", 100.0),
        ("0", 1.0),
        ("-7", 1.0),
    ])
    def test_score(self, answer, expected):
        advisor = GeminiAdvisor(api_key="k", session=_session(answer))
        assert advisor.score("Hiker is near a road.") == expected

    def test_score_without_number(self):
        advisor = GeminiAdvisor(api_key="k", session=_session("unsure"))
        with pytest.raises(ValueError, match="no score"):
            advisor.score("Hiker is near a road.")

    def test_unexpected_payload(self):
        advisor = GeminiAdvisor(api_key="k", session=_session(payload={"candidates": []}))
        with pytest.raises(ValueError, match="Unexpected"):
            advisor.classify("Trail")

    def test_http_error_propagates(self):
        session = _session("true")
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("503")
        advisor = GeminiAdvisor(api_key="k", session=session)
        with pytest.raises(requests.HTTPError):
            advisor.score("Hiker is near a road.")
