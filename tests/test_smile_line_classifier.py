"""Tests for the smile-line classifier."""

import httpx
import openai
import pytest

from dsd.analysis.smile_line import SmileLineClassifier, parse_classifier_response
from dsd.llm.client import MockLLMClient


class TestParseClassifierResponse:
    """Tests for parsing the classifier answer."""

    def test_plain_json(self):
        """Test that a well-formed answer parses."""
        result = parse_classifier_response(
            '{"smile_line": "alta", "gingival_exposure_mm": 4.2, '
            '"confidence": "alta", "justification": "Sorriso gengival"}'
        )

        assert result is not None
        assert result.smile_line == "alta"
        assert result.gingival_exposure_mm == 4.2
        assert result.confidence == "alta"
        assert result.justification == "Sorriso gengival"

    def test_fenced_json_with_unaccented_media(self):
        """Test that fences and 'media' are tolerated."""
        result = parse_classifier_response(
            'Resultado:\n```json\n{"smile_line": "media", "gingival_exposure_mm": "1,5", '
            '"confidence": "MEDIA"}\n```'
        )

        assert result.smile_line == "média"
        assert result.gingival_exposure_mm == 1.5
        assert result.confidence == "média"

    def test_unknown_smile_line_rejected(self):
        """Test that values outside the enum yield None."""
        assert parse_classifier_response(
            '{"smile_line": "muito alta", "gingival_exposure_mm": 5}'
        ) is None

    @pytest.mark.parametrize("exposure", ['', '"n/a"', 'null'])
    def test_missing_exposure_rejected(self, exposure):
        """Test that a missing or non-numeric exposure yields None."""
        body = '{"smile_line": "alta"' + (f', "gingival_exposure_mm": {exposure}' if exposure else "") + "}"
        assert parse_classifier_response(body) is None

    def test_unparseable_confidence_defaults_to_media(self):
        """Test that an unknown confidence becomes 'média'."""
        result = parse_classifier_response(
            '{"smile_line": "baixa", "gingival_exposure_mm": 0, "confidence": "certeza"}'
        )

        assert result.confidence == "média"

    @pytest.mark.parametrize("content", ["", "sem json aqui", "{not json}", None])
    def test_garbage_rejected(self, content):
        """Test that unparseable text yields None."""
        assert parse_classifier_response(content) is None


class TestSmileLineClassifier:
    """Tests for SmileLineClassifier.classify."""

    @pytest.mark.asyncio
    async def test_classify_success(self, photo):
        """Test that the classifier sends the photo and parses the answer."""
        client = MockLLMClient(responses={
            "classifier-model": '{"smile_line": "alta", "gingival_exposure_mm": 3.2, "confidence": "alta"}',
        })
        classifier = SmileLineClassifier(client, model="classifier-model")

        result = await classifier.classify(photo)

        assert result.smile_line == "alta"
        assert client.calls[0]["files"] == [(photo.data, photo.mime_type)]
        assert client.calls[0]["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_transport_failure_returns_none(self, photo):
        """Test that an upstream error degrades to None."""
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        client = MockLLMClient(responses={
            "classifier-model": openai.APITimeoutError(request=request),
        })
        classifier = SmileLineClassifier(client, model="classifier-model")

        assert await classifier.classify(photo) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        TypeError("'NoneType' object is not subscriptable"),
        KeyError("choices"),
        RuntimeError("event loop hiccup"),
    ])
    async def test_unexpected_error_returns_none(self, photo, error):
        """Test that errors outside the HTTP layer also degrade to None."""
        client = MockLLMClient(responses={"classifier-model": error})
        classifier = SmileLineClassifier(client, model="classifier-model")

        assert await classifier.classify(photo) is None
