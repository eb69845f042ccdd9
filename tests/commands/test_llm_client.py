"""Tests for the classify/extract service clients.

These tests use respx to mock outbound HTTP calls.
"""

import json

import httpx
import pytest
import respx

from stocktalk.assistant_config import AssistantConfig
from stocktalk.commands.llm_client import IntentClassifier, ParameterExtractor
from stocktalk.metrics import MetricsCollector

CLASSIFY_URL = "http://nlu.test/api/ai/classify-intent"
EXTRACT_URL = "http://nlu.test/api/ai/extract-params"


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def classifier(config, metrics) -> IntentClassifier:
    return IntentClassifier(config, metrics)


@pytest.fixture
def extractor(config, metrics) -> ParameterExtractor:
    return ParameterExtractor(config, metrics)


class TestIntentClassifier:
    """Test stage 1 classification."""

    @respx.mock
    def test_successful_classification(self, classifier) -> None:
        route = respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"action": "ADD_STOCK", "confidence": 0.92, "reasoning": "adding"},
                },
            )
        )

        result = classifier.classify("add 5 bolts to van", "No recent context.")

        assert result.action == "ADD_STOCK"
        assert result.confidence == pytest.approx(0.92)
        assert result.reasoning == "adding"
        body = json.loads(route.calls.last.request.content)
        assert body == {"command": "add 5 bolts to van", "context": "No recent context."}

    @respx.mock
    def test_context_omitted_when_empty(self, classifier) -> None:
        route = respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"action": "LOW_STOCK_REPORT", "confidence": 0.9}}
            )
        )

        classifier.classify("low stock")

        assert json.loads(route.calls.last.request.content) == {"command": "low stock"}

    @respx.mock
    def test_alias_normalized(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"action": "receive_stock", "confidence": 0.8}}
            )
        )

        assert classifier.classify("received 5 bolts").action == "ADD_STOCK"

    @respx.mock
    def test_unregistered_action_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"action": "MAKE_COFFEE", "confidence": 0.99}}
            )
        )

        result = classifier.classify("make me a coffee")

        assert result.action == "QUERY_INVENTORY"
        assert result.confidence == pytest.approx(0.3)

    @respx.mock
    def test_http_error_degrades(self, classifier, metrics) -> None:
        respx.post(CLASSIFY_URL).mock(return_value=httpx.Response(500, text="boom"))

        result = classifier.classify("add 5 bolts")

        assert result.action == "QUERY_INVENTORY"
        assert result.confidence == pytest.approx(0.1)
        assert result.reasoning == "Classification service unavailable"
        assert metrics.get_snapshot()["service_failures"] == {"classify": 1}

    @respx.mock
    def test_transport_error_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(side_effect=httpx.ConnectError("refused"))

        assert classifier.classify("add 5 bolts").confidence == pytest.approx(0.1)

    @respx.mock
    def test_timeout_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        assert classifier.classify("add 5 bolts").action == "QUERY_INVENTORY"

    @respx.mock
    def test_unsuccessful_envelope_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(200, json={"success": False, "message": "quota"})
        )

        assert classifier.classify("add 5 bolts").confidence == pytest.approx(0.1)

    @respx.mock
    def test_malformed_json_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(return_value=httpx.Response(200, text="<html>"))

        assert classifier.classify("add 5 bolts").confidence == pytest.approx(0.1)

    @respx.mock
    def test_out_of_range_confidence_degrades(self, classifier) -> None:
        respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"action": "ADD_STOCK", "confidence": 7}}
            )
        )

        assert classifier.classify("add 5 bolts").confidence == pytest.approx(0.1)

    @respx.mock
    def test_api_key_sent(self) -> None:
        config = AssistantConfig(classify_url=CLASSIFY_URL, api_key="sk-test-123")
        route = respx.post(CLASSIFY_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"action": "ADD_STOCK", "confidence": 0.9}}
            )
        )

        IntentClassifier(config).classify("add 5 bolts")

        assert route.calls.last.request.headers["Authorization"] == "Bearer sk-test-123"


class TestParameterExtractor:
    """Test stage 2 extraction."""

    @respx.mock
    def test_successful_extraction(self, extractor) -> None:
        route = respx.post(EXTRACT_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "parameters": {"item": "bolts", "quantity": 5},
                        "missingRequired": ["location"],
                        "confidence": 0.85,
                    },
                },
            )
        )

        result = extractor.extract("add 5 bolts", "ADD_STOCK", "ctx")

        assert result.parameters == {"item": "bolts", "quantity": 5}
        assert result.missing_required == ["location"]
        assert result.confidence == pytest.approx(0.85)
        body = json.loads(route.calls.last.request.content)
        assert body == {"command": "add 5 bolts", "action": "ADD_STOCK", "context": "ctx"}

    @respx.mock
    def test_missing_required_defaults_empty(self, extractor) -> None:
        respx.post(EXTRACT_URL).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"parameters": {}, "confidence": 0.5}}
            )
        )

        assert extractor.extract("low stock", "LOW_STOCK_REPORT").missing_required == []

    @respx.mock
    def test_failure_degrades(self, extractor, metrics) -> None:
        respx.post(EXTRACT_URL).mock(side_effect=httpx.ConnectError("refused"))

        result = extractor.extract("add 5 bolts", "ADD_STOCK")

        assert result.parameters == {}
        assert result.missing_required == []
        assert result.confidence == pytest.approx(0.1)
        assert metrics.get_snapshot()["service_failures"] == {"extract": 1}

    @respx.mock
    def test_missing_confidence_degrades(self, extractor) -> None:
        respx.post(EXTRACT_URL).mock(
            return_value=httpx.Response(200, json={"success": True, "data": {"parameters": {}}})
        )

        assert extractor.extract("x", "ADD_STOCK").confidence == pytest.approx(0.1)
