import httpx
import pytest
from fastapi.testclient import TestClient

from src.gateway import main
from src.gateway.deps import get_http_client

CONTEXT = {
    "target_model_id": "gpt-4o",
    "context_messages": [
        {"id": "ctx_r_0", "role": "assistant", "agent": "copywriting", "step_index": 0, "content": "Context from copywriting: hi"}
    ],
    "plan_summary": ["copywriting"],
    "final_system_prompt": None,
}


@pytest.fixture
def gateway_with():
    def build(handler):
        async def client_override():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                yield client

        main.app.dependency_overrides[get_http_client] = client_override
        return TestClient(main.app)

    yield build
    main.app.dependency_overrides.clear()


def test_health(gateway_with):
    r = gateway_with(lambda request: httpx.Response(500)).get("/health")
    assert r.status_code == 200
    assert "x-request-id" in r.headers


def test_chat_context_proxies_and_forwards_request_id(gateway_with):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json=CONTEXT)

    r = gateway_with(handler).post("/chat/context", json={"message": "hi"}, headers={"X-Request-ID": "abc"})

    assert r.status_code == 200
    assert r.json()["plan_summary"] == ["copywriting"]
    assert r.headers["x-request-id"] == "abc"
    assert seen[0].url.path == "/prepare-context"
    assert seen[0].headers["x-request-id"] == "abc"


def test_request_id_assigned_when_missing(gateway_with):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json=CONTEXT)

    r = gateway_with(handler).post("/chat/context", json={"message": "hi"})

    assert r.headers["x-request-id"].startswith("req_")
    assert seen[0].headers["x-request-id"] == r.headers["x-request-id"]


def test_orchestrator_unreachable(gateway_with):
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    r = gateway_with(handler).post("/chat/context", json={"message": "hi"})
    assert r.status_code == 503


def test_orchestrator_error_passed_through(gateway_with):
    r = gateway_with(lambda request: httpx.Response(502, json={"detail": "Failed to generate workflow plan"})).post(
        "/chat/context", json={"message": "hi"}
    )
    assert r.status_code == 502
    assert r.json()["detail"] == "Failed to generate workflow plan"


def test_orchestrator_timeout(gateway_with):
    def handler(request: httpx.Request):
        raise httpx.ReadTimeout("no response", request=request)

    r = gateway_with(handler).post("/chat/context", json={"message": "hi"})
    assert r.status_code == 504
    assert r.json()["detail"] == "Orchestrator timed out"
