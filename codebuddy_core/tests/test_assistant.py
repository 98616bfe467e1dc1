import json
from types import SimpleNamespace

import pytest
from google.genai import errors

from codebuddy_core.agents.assistant import BUSY_TEXT, EMPTY_RESPONSE_TEXT, AssistantClient
from codebuddy_core.domain.exceptions import ApiError
from codebuddy_core.domain.models import ChatResult, Turn
from codebuddy_core.prompts import BASE_PROMPT
from codebuddy_core.providers.gemini_client import GeminiClient


class SettingsStub:
    gemini_api_key = "gemini-test-key"
    gemini_model = "gemini-2.5-flash"
    openrouter_api_key = None
    temperature = 0.2
    max_retries = 3
    initial_backoff_ms = 2000
    backoff_factor = 2.0
    http_timeout = 1.0


class FakeGenai:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.created = []
        self.sent = []
        self.chats = self

    def create(self, **kwargs):
        self.created.append(kwargs)
        return self

    def send_message(self, message):
        self.sent.append(message)
        item = self.outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(text=item)


def _quota_error():
    return errors.ClientError(429, {"message": "Resource has been exhausted (e.g. check quota).", "status": "RESOURCE_EXHAUSTED"})


def _assistant(fake, cfg=None, built=None):
    slept = []

    def factory(c):
        if built is not None:
            built.append(c)
        return GeminiClient(c, client_factory=lambda api_key: fake)

    client = AssistantClient(cfg or SettingsStub(), provider_factory=factory, sleep=slept.append)
    return client, slept


def test_ask_retries_rate_limit_then_succeeds():
    fake = FakeGenai([_quota_error(), _quota_error(), "fixed it"])
    client, slept = _assistant(fake)

    reply = client.ask("why?", "x = 1", "python", "debug", [])

    assert reply == "fixed it"
    assert len(fake.sent) == 3
    assert slept == [2.0, 4.0]
    assert sum(slept) == 6.0


def test_ask_exhausts_retries_and_reports_busy():
    fake = FakeGenai([_quota_error()] * 3)
    client, slept = _assistant(fake)

    reply = client.ask("why?", "x = 1", "python", "explain", [])

    assert reply == BUSY_TEXT
    assert not reply.startswith("Error communicating")
    assert len(fake.sent) == 3
    assert slept == [2.0, 4.0]


def test_ask_respects_configured_retry_bound():
    class FiveTries(SettingsStub):
        max_retries = 5
        backoff_factor = 1.5

    fake = FakeGenai([_quota_error()] * 5)
    client, slept = _assistant(fake, cfg=FiveTries())

    assert client.ask("q", "", "python", "explain") == BUSY_TEXT
    assert len(fake.sent) == 5
    assert slept == [2.0, 3.0, 4.5, 6.75]


def test_ask_does_not_retry_auth_error():
    fake = FakeGenai([errors.ClientError(401, {"message": "API key not valid", "status": "UNAUTHENTICATED"})])
    client, slept = _assistant(fake)

    reply = client.ask("q", "code", "python", "explain", [])

    assert len(fake.sent) == 1
    assert slept == []
    assert reply.startswith("Error communicating with CodeBuddy")
    assert "API key not valid" in reply


def test_ask_empty_response_returns_placeholder():
    client, _ = _assistant(FakeGenai([""]))
    assert client.ask("q", "", "python", "document") == EMPTY_RESPONSE_TEXT


def test_ask_missing_key_returns_error_without_request():
    class NoKey(SettingsStub):
        gemini_api_key = None

    fake = FakeGenai([])
    client, _ = _assistant(fake, cfg=NoKey())
    reply = client.ask("q", "", "python", "explain")
    assert "GEMINI_API_KEY not set" in reply
    assert fake.sent == []


def test_ask_builds_request_from_context_and_history():
    fake = FakeGenai(["ok"])
    client, _ = _assistant(fake)
    history = [{"role": "user", "content": "first"}, Turn(role="assistant", content="second")]

    client.ask("what now?", "def f(): pass", "python", "optimize", history)

    created = fake.created[0]
    assert [c.role for c in created["history"]] == ["user", "model"]
    assert BASE_PROMPT in str(created["config"].system_instruction)
    assert created["config"].temperature == 0.2
    prompt = fake.sent[0]
    assert "LANGUAGE: python" in prompt
    assert "def f(): pass" in prompt
    assert prompt.endswith("what now?")


def test_ask_empty_history_sends_single_turn():
    fake = FakeGenai(["ok"])
    client, _ = _assistant(fake)
    client.ask("q", "", "sql", "explain", [])
    assert fake.created[0]["history"] == []
    assert len(fake.sent) == 1


def test_ask_unknown_mode_raises():
    client, _ = _assistant(FakeGenai(["ok"]))
    with pytest.raises(ValueError):
        client.ask("q", "", "python", "refactor")


def test_ask_rejects_third_role():
    client, _ = _assistant(FakeGenai(["ok"]))
    with pytest.raises(ValueError):
        client.ask("q", "", "python", "explain", [{"role": "system", "content": "x"}])


def test_alternate_provider_used_exclusively(monkeypatch):
    class BothKeys(SettingsStub):
        openrouter_api_key = "or-test-key-123"
        openrouter_base_url = "https://openrouter.ai/api/v1"
        openrouter_model = "google/gemini-2.0-flash-exp:free"
        app_url = "http://localhost:3000"
        app_title = "CodeBuddy"

    def no_gemini(*a, **kw):
        raise AssertionError("primary client must not be constructed")

    monkeypatch.setattr("codebuddy_core.providers.GeminiClient", no_gemini)

    captured = {}

    class Resp:
        status_code = 200

        def json(self):
            return {"choices": [{"message": {"role": "assistant", "content": "from alternate"}}]}

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, **_):
            captured["payload"] = json
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)

    reply = AssistantClient(BothKeys(), sleep=lambda s: None).ask("q", "", "python", "explain")
    assert reply == "from alternate"
    assert captured["payload"]["temperature"] == 0.2


def test_alternate_failure_is_not_retried_and_does_not_fall_back():
    calls = []

    class FailingAlternate:
        name = "openrouter"
        model = "alt"
        retry_on_rate_limit = False

        def chat(self, req):
            calls.append(req)
            raise ApiError(code="API_ERROR", message="429 Too Many Requests", http_status=429)

    slept = []
    client = AssistantClient(SettingsStub(), provider_factory=lambda c: FailingAlternate(), sleep=slept.append)
    reply = client.ask("q", "", "python", "explain")
    assert len(calls) == 1
    assert slept == []
    assert reply.startswith("Error communicating with CodeBuddy")
    assert "429 Too Many Requests" in reply


def test_ask_returns_provider_text_verbatim():
    class Echo:
        name = "echo"
        model = "echo-dev"
        retry_on_rate_limit = True

        def chat(self, req):
            return ChatResult(provider="echo", model=req.model, text="  spaced  ")

    client = AssistantClient(SettingsStub(), provider_factory=lambda c: Echo(), sleep=lambda s: None)
    assert client.ask("q", "", "python", "explain") == "  spaced  "


@pytest.mark.parametrize(
    "status,body",
    [
        (200, "<html>gateway</html>"),
        (302, ""),
        (200, "[]"),
    ],
)
def test_ask_alternate_unusable_body_still_returns_text(monkeypatch, status, body):
    class AltSettings(SettingsStub):
        openrouter_api_key = "or-test-key-123"

    class Resp:
        status_code = status
        reason_phrase = "OK" if status == 200 else "Found"

        def json(self):
            return json.loads(body)

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    reply = AssistantClient(AltSettings(), sleep=lambda s: None).ask("q", "", "python", "explain")
    assert isinstance(reply, str)
    assert reply.startswith("Error communicating with CodeBuddy")


def test_ask_gemini_unknown_response_returns_text():
    fake = FakeGenai([errors.UnknownApiResponseError("no candidates")])
    client, slept = _assistant(fake)
    reply = client.ask("q", "", "python", "explain")
    assert reply.startswith("Error communicating with CodeBuddy")
    assert slept == []
