import httpx
from starlette.testclient import TestClient

from yt_story_mcp.config import Settings
from yt_story_mcp.main import AppRuntime, create_app


class StaticStrategy:
    def __init__(self, result: bytes | Exception) -> None:
        self.name = "static"
        self.result = result

    def is_available(self) -> bool:
        return True

    async def attempt(self, video_id: str) -> bytes:
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


async def _no_sleep(_: float) -> None:
    return None


def _provider(seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/upload"):
            return httpx.Response(200, json={"upload_url": "https://cdn.assembly.example/u1"})
        if request.method == "POST":
            return httpx.Response(200, json={"id": "job-1", "status": "queued"})
        return httpx.Response(200, json={"id": "job-1", "status": "completed", "text": "Hello world."})

    return httpx.MockTransport(handler)


def _client(seen: list[httpx.Request], strategy: StaticStrategy, api_key: str = "secret") -> TestClient:
    runtime = AppRuntime(
        Settings(assemblyai_api_key=api_key),
        transport=_provider(seen),
        strategies=[strategy],
        sleep=_no_sleep,
    )
    return TestClient(create_app(runtime).http_app())


def test_story_route_returns_transcript_and_script() -> None:
    seen: list[httpx.Request] = []
    client = _client(seen, StaticStrategy(b"\x00" * 500))

    response = client.post("/api/story-from-youtube", json={"youtubeId": "abc123"})

    assert response.status_code == 200
    body = response.json()
    assert body["text"] == "Hello world."
    assert len(body["beats"]) == 6
    assert body["transcript_id"] == "job-1"
    assert "prompt" in body
    assert response.headers["access-control-allow-origin"] == "*"


def test_story_route_reports_acquisition_failure() -> None:
    seen: list[httpx.Request] = []
    client = _client(seen, StaticStrategy(RuntimeError("blocked")))

    response = client.post("/api/story-from-youtube", json={"youtubeId": "abc123"})

    assert response.status_code == 502
    body = response.json()
    assert body["stage"] == "acquisition"
    assert body["error"].startswith("Audio acquisition failed:")
    assert "text" not in body
    assert seen == []


def test_story_route_requires_identifier() -> None:
    client = _client([], StaticStrategy(b"audio"))

    assert client.post("/api/story-from-youtube", json={}).status_code == 400
    assert client.post("/api/story-from-youtube", content=b"not json").status_code == 400


def test_story_route_reports_missing_credential() -> None:
    seen: list[httpx.Request] = []
    client = _client(seen, StaticStrategy(b"audio"), api_key="")

    response = client.post("/api/story-from-youtube", json={"youtubeId": "abc123"})

    assert response.status_code == 500
    assert response.json()["stage"] == "configuration"
    assert seen == []


def test_story_route_get_returns_tip() -> None:
    response = _client([], StaticStrategy(b"audio")).get("/api/story-from-youtube")

    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_story_route_answers_preflight() -> None:
    client = _client([], StaticStrategy(b"audio"))

    response = client.options(
        "/api/story-from-youtube",
        headers={
            "Origin": "https://front.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-headers"] == "content-type"


def test_health_route() -> None:
    response = _client([], StaticStrategy(b"audio")).get("/healthz")

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["credential_configured"] is True


def test_selftest_relays_provider_answer() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(401, json={"error": "Authentication error, API token missing/invalid"})

    runtime = AppRuntime(Settings(assemblyai_api_key="bad-key"), transport=httpx.MockTransport(handler))
    response = TestClient(create_app(runtime).http_app()).get("/api/aai-selftest")

    assert response.status_code == 401
    assert response.json()["error"].startswith("Authentication error")
    assert seen[0].headers["authorization"] == "bad-key"


def test_selftest_without_credential() -> None:
    response = _client([], StaticStrategy(b"audio"), api_key="").get("/api/aai-selftest")

    assert response.status_code == 500
    assert response.json() == {"ok": False, "where": "env", "error": "ASSEMBLYAI_API_KEY is not set"}
