from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from termslens.llm.engines import EngineSet
from termslens.llm.gateway import ModelGateway
from termslens.llm.mock import MockCompletionEngine
from termslens.main import app
from termslens.services.analysis import AnalysisService, get_analysis_service

from conftest import FixedDetector, key_points_json


@pytest.fixture
def service(small_config, mock_gateway) -> AnalysisService:
    return AnalysisService(small_config, gateway=mock_gateway)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_analysis_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _override(service: AnalysisService) -> TestClient:
    app.dependency_overrides[get_analysis_service] = lambda: service
    return TestClient(app)


def test_root_and_languages(client):
    assert client.get("/").text == "ok"

    languages = client.get("/languages").json()
    assert len(languages) == 21
    assert languages[11] == {"code": "zh", "name": "Chinese (Simplified)"}


def test_capabilities_and_healthz(client):
    assert client.get("/capabilities").json() == {
        "completion": "available",
        "summarization": "available",
        "translation": "available",
        "detection": "available",
    }
    assert client.get("/healthz").status_code == 200


def test_store_document_then_summarize(client):
    stored = client.put("/sessions/demo/document", json={"text": "We share data with partners."})
    assert stored.status_code == 200
    assert stored.json() == {"session_id": "demo", "source": "text", "chars": 28}

    response = client.post("/sessions/demo/summary", json={"length": "long"})

    assert response.status_code == 200
    assert response.json() == {
        "session_id": "demo",
        "summary": "MOCK_SUMMARY[long]: We share data with partners.",
    }


def test_upload_plain_text_document(client, service):
    files = {"file": ("policy.txt", b"Cookies\n\n\n\nare used.", "text/plain")}

    response = client.post("/sessions/up/document/upload", files=files)

    assert response.status_code == 200
    assert response.json()["source"] == "policy.txt"
    assert service.get_document("up") == "Cookies\n\nare used."


def test_upload_rejects_unknown_format(client):
    files = {"file": ("deck.pptx", b"...", "application/octet-stream")}

    response = client.post("/sessions/up/document/upload", files=files)

    assert response.status_code == 400
    assert "Unsupported file format" in response.json()["detail"]


def test_key_points_returns_points_and_markdown(client, responder):
    responder.on(
        "extract 3-7 MOST IMPORTANT points",
        key_points_json(("Data sold to advertisers", "high", "privacy")),
    )
    client.put("/sessions/kp/document", json={"text": "Short terms."})

    response = client.post("/sessions/kp/key-points", json={})

    assert response.status_code == 200
    payload = response.json()
    assert payload["points"] == [
        {"point": "Data sold to advertisers", "importance": "high", "category": "privacy", "chunkIndex": 0}
    ]
    assert payload["formatted"] == "### 🔒 Privacy\n\n- Data sold to advertisers"


def test_translation_uses_camel_case(client):
    same = client.post("/sessions/t/translation", json={"text": "Bonjour", "targetLanguage": "fr", "sourceLanguage": "fr"})

    assert same.status_code == 200
    assert same.json() == {
        "translatedText": "Bonjour",
        "sourceLanguage": "fr",
        "targetLanguage": "fr",
        "note": "Content is already in the target language",
    }


def test_translation_reports_chunks_processed(small_config, responder):
    service = AnalysisService(
        small_config,
        gateway=ModelGateway(EngineSet(completion=MockCompletionEngine(responder), detector=FixedDetector("es"))),
    )
    responder.on("You are a translator", "Hello")
    client = _override(service)
    try:
        response = client.post("/sessions/t/translation", json={"text": "Hola", "targetLanguage": "en"})
    finally:
        app.dependency_overrides.clear()

    assert response.json() == {
        "translatedText": "Hello",
        "sourceLanguage": "es",
        "targetLanguage": "en",
        "chunksProcessed": 1,
    }


def test_question_endpoint(client, responder):
    responder.on("Question: Can I", "Yes.")
    client.put("/sessions/q/document", json={"text": "Accounts can be deleted."})

    response = client.post("/sessions/q/questions", json={"question": "Can I delete it?"})

    assert response.status_code == 200
    assert response.json() == {"session_id": "q", "question": "Can I delete it?", "answer": "Yes."}


def test_empty_question_is_bad_request(client, responder):
    client.put("/sessions/q/document", json={"text": "Accounts can be deleted."})

    response = client.post("/sessions/q/questions", json={"question": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Please provide a question"
    assert responder.calls == []


def test_missing_document_is_not_found(client):
    response = client.post("/sessions/nobody/summary", json={})

    assert response.status_code == 404
    assert client.get("/sessions/nobody/suggested-questions").status_code == 404


def test_oversized_document_is_413(client):
    response = client.post("/sessions/big/key-points", json={"text": "x" * 5_001})

    assert response.status_code == 413
    assert "Maximum: 5000 chars" in response.json()["detail"]


def test_missing_summarizer_is_service_unavailable(small_config):
    service = AnalysisService(small_config, gateway=ModelGateway(EngineSet(completion=MockCompletionEngine())))
    client = _override(service)
    try:
        response = client.post("/sessions/s/summary", json={"text": "Some terms."})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"].startswith("Summarization failed:")


def test_engine_failure_is_bad_gateway(small_config):
    def _broken(system_prompt, text):
        raise RuntimeError("model crashed")

    service = AnalysisService(small_config, gateway=ModelGateway(EngineSet(completion=MockCompletionEngine(_broken))))
    client = _override(service)
    try:
        response = client.post("/sessions/s/questions", json={"text": "Terms.", "question": "Why?"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    assert response.json()["detail"].startswith("Q&A failed:")


def test_suggested_questions_endpoint(client, responder):
    responder.on("helpful questions", json.dumps(["Only one?"]))
    client.put("/sessions/sq/document", json={"text": "Policy."})

    response = client.get("/sessions/sq/suggested-questions")

    assert response.status_code == 200
    assert response.json() == {"session_id": "sq", "questions": ["Only one?"]}


def test_delete_document(client):
    client.put("/sessions/d/document", json={"text": "Policy."})

    assert client.delete("/sessions/d/document").status_code == 204
    assert client.delete("/sessions/d/document").status_code == 404
