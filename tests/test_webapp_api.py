from __future__ import annotations

from datetime import datetime, timezone
import importlib
from typing import List

from fastapi.testclient import TestClient
import pytest

from config.settings import PipelineSettings, ScoringSettings, Settings
from core import EvidenceItem, RecencyWindow
from orchestrator.queue import InMemoryJobQueue
from orchestrator.service import JobOrchestrator
from orchestrator.store import InMemoryJobStore
from pipeline.resolver import LinkResolver
from pipeline.runtime import JobPipelineRuntime, PipelineStrategy
from pipeline.scoring import ScoringWeights
from utils.exceptions import ConfigurationError


class ApiAdapter:
    def __init__(self, label: str, items: List[EvidenceItem]) -> None:
        self.label = label
        self._items = items
        self.windows = []

    async def fetch(self, topic: str, window: RecencyWindow) -> List[EvidenceItem]:
        self.windows.append(window.mode.value)
        return [item for item in self._items if topic.lower() in item.title.lower()]


class ApiSummarizer:
    provider = "api-mock"

    async def summarize(self, system_prompt: str, evidence_payload: str) -> dict:
        return {"content": [{"type": "text", "text": "# INTELLIGENCE BRIEFING: KIEL\n\n## BLUF\nTense."}]}


def _client(monkeypatch) -> tuple:
    module = importlib.import_module("webapp.app")
    adapter = ApiAdapter(
        "MAIN_DE",
        [
            EvidenceItem(
                source_label="MAIN_DE",
                publisher="NDR",
                title="Kiel harbour closed after navy incident",
                url="https://www.ndr.de/kiel-1",
                published_at=datetime.now(timezone.utc),
            )
        ],
    )
    orchestrator = JobOrchestrator(store=InMemoryJobStore(), queue=InMemoryJobQueue())
    runtime = JobPipelineRuntime(
        orchestrator=orchestrator,
        strategy=PipelineStrategy(
            adapters=[adapter],
            scoring_weights=ScoringWeights.from_settings(ScoringSettings()),
            summarizer=ApiSummarizer(),
            resolver=LinkResolver(),
        ),
        settings=Settings(pipeline=PipelineSettings(final_write_backoff=0.0)),
    )
    monkeypatch.setattr(module, "get_orchestrator", lambda: orchestrator)
    monkeypatch.setattr(module, "get_runtime", lambda: runtime)
    return TestClient(module.app), adapter


def test_health(monkeypatch) -> None:
    client, _ = _client(monkeypatch)
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_create_job_runs_in_background_and_completes(monkeypatch) -> None:
    client, adapter = _client(monkeypatch)

    create = client.post("/api/jobs", json={"prompt": "MODE_72H:Kiel"})
    assert create.status_code == 200
    body = create.json()
    assert body["status"] == "QUEUED"
    assert body["topic"] == "Kiel"
    assert body["window"] == "72h"
    job_id = body["jobId"]

    status = client.get(f"/api/jobs/{job_id}")
    assert status.status_code == 200
    payload = status.json()
    assert payload["jobId"] == job_id
    assert payload["status"] == "COMPLETED"
    assert payload["message"] == "SITREP generated."
    assert payload["result"].startswith("# INTELLIGENCE BRIEFING: KIEL")
    assert adapter.windows == ["72h"]


def test_create_job_with_topic_and_explicit_mode(monkeypatch) -> None:
    client, adapter = _client(monkeypatch)

    create = client.post("/api/jobs", json={"topic": "Kiel", "window_mode": "weekly", "jobId": "caller-1"})
    assert create.status_code == 200
    assert create.json()["jobId"] == "caller-1"
    assert create.json()["window"] == "weekly"
    assert client.get("/api/jobs/caller-1").json()["status"] == "COMPLETED"
    assert adapter.windows == ["weekly"]


def test_job_without_evidence_reports_failure(monkeypatch) -> None:
    client, _ = _client(monkeypatch)

    job_id = client.post("/api/jobs", json={"prompt": "Paris"}).json()["jobId"]
    payload = client.get(f"/api/jobs/{job_id}").json()
    assert payload["status"] == "FAILED"
    assert "No data found" in payload["message"]
    assert payload["result"] == ""


def test_unknown_job_is_not_found(monkeypatch) -> None:
    client, _ = _client(monkeypatch)
    response = client.get("/api/jobs/does-not-exist")
    assert response.status_code == 404
    assert response.json()["status"] == "NOT_FOUND"


@pytest.mark.parametrize("body", [{}, {"prompt": "   "}, {"topic": "Kiel", "mode": "monthly"}])
def test_invalid_payloads_are_rejected(monkeypatch, body) -> None:
    client, _ = _client(monkeypatch)
    assert client.post("/api/jobs", json=body).status_code == 422


def test_repeated_job_id_returns_existing_record(monkeypatch) -> None:
    client, adapter = _client(monkeypatch)

    client.post("/api/jobs", json={"topic": "Kiel", "jobId": "caller-2"})
    again = client.post("/api/jobs", json={"topic": "Paris", "jobId": "caller-2"})

    assert again.status_code == 200
    assert again.json()["status"] == "COMPLETED"
    assert again.json()["topic"] == "Kiel"
    payload = client.get("/api/jobs/caller-2").json()
    assert payload["status"] == "COMPLETED"
    assert payload["result"].startswith("# INTELLIGENCE BRIEFING: KIEL")
    assert adapter.windows == ["weekly"]


def test_runtime_build_failure_marks_job_failed(monkeypatch) -> None:
    module = importlib.import_module("webapp.app")
    orchestrator = JobOrchestrator(store=InMemoryJobStore(), queue=InMemoryJobQueue())

    def _broken_runtime():
        raise ConfigurationError("Unknown LLM provider: bogus")

    monkeypatch.setattr(module, "get_orchestrator", lambda: orchestrator)
    monkeypatch.setattr(module, "get_runtime", _broken_runtime)
    client = TestClient(module.app)

    job_id = client.post("/api/jobs", json={"prompt": "Berlin"}).json()["jobId"]
    payload = client.get(f"/api/jobs/{job_id}").json()

    assert payload["status"] == "FAILED"
    assert payload["message"] == "Error: ConfigurationError"
    assert orchestrator.queue.size() == 0
    assert orchestrator.queue.in_flight() == 0


def test_startup_configures_logging_from_settings(monkeypatch) -> None:
    module = importlib.import_module("webapp.app")
    calls = []
    settings = Settings(pipeline=PipelineSettings(log_level="DEBUG", log_file="api.log"))
    monkeypatch.setattr(module, "get_settings", lambda: settings)
    monkeypatch.setattr(module, "configure_logging", lambda level, log_file: calls.append((level, log_file)))

    with TestClient(module.app) as client:
        assert client.get("/api/health").status_code == 200

    assert calls == [("DEBUG", "api.log")]
