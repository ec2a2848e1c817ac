import asyncio
import json

import httpx
import pytest

from bughunter.clients.llm import LLMClient
from bughunter.core.config import LLMConfig
from bughunter.core.errors import AiCompletionError


def _client(handler, **kw):
    cfg = {
        "provider": "openai",
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-test",
        "api_key": "sk-abc",
    }
    cfg.update(kw)
    return LLMClient(LLMConfig(**cfg), transport=httpx.MockTransport(handler))


def test_complete_openai():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": '{"ok": true}'}}]})

    text = asyncio.run(_client(handler).complete("sys", "usr"))

    assert text == '{"ok": true}'
    assert seen["url"] == "https://api.openai.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-abc"
    assert seen["body"]["model"] == "gpt-test"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "usr"},
    ]
    assert seen["body"]["max_tokens"] == 500
    assert seen["body"]["temperature"] == 0.0


def test_complete_azure_deployment_route():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi"}}]})

    client = _client(
        handler,
        provider="azure",
        base_url="https://example.openai.azure.com",
        deployment="triage",
        api_version="2023-05-15",
        api_key="az-key",
    )
    assert asyncio.run(client.complete("s", "u")) == "hi"
    assert seen["url"] == (
        "https://example.openai.azure.com/openai/deployments/triage"
        "/chat/completions?api-version=2023-05-15"
    )
    assert seen["key"] == "az-key"
    assert "model" not in seen["body"]


def test_complete_azure_model_route():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi"}}]})

    client = _client(
        handler,
        provider="azure",
        base_url="https://example.openai.azure.com",
        model="gpt-35-turbo",
        api_version="2024-02-01",
    )
    asyncio.run(client.complete("s", "u"))
    assert seen["url"].endswith("/openai/chat/completions?api-version=2024-02-01")
    assert seen["body"]["model"] == "gpt-35-turbo"


def test_complete_ollama():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"content": "plain answer"}})

    client = _client(
        handler, provider="ollama", base_url="http://localhost:11434", model="m", api_key=None
    )
    assert asyncio.run(client.complete("s", "u")) == "plain answer"
    assert seen["url"] == "http://localhost:11434/api/chat"
    assert seen["body"]["stream"] is False
    assert seen["body"]["options"]["num_predict"] == 500


def test_complete_http_error():
    def handler(request):
        return httpx.Response(401, text="invalid api key")

    with pytest.raises(AiCompletionError) as ei:
        asyncio.run(_client(handler).complete("s", "u"))
    assert ei.value.status == 401
    assert "sk-abc" not in str(ei.value)


def test_complete_unreachable():
    def handler(request):
        raise httpx.ConnectError("conn", request=request)

    with pytest.raises(AiCompletionError):
        asyncio.run(_client(handler).complete("s", "u"))


def test_complete_empty_choices():
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(AiCompletionError):
        asyncio.run(_client(handler).complete("s", "u"))


@pytest.mark.parametrize(
    "body",
    [
        {"choices": ["not a choice"]},
        {"choices": [{"message": "flat text"}]},
        {"choices": [{"message": {"content": 42}}]},
        {"choices": {"0": {}}},
    ],
)
def test_complete_malformed_choices(body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(AiCompletionError):
        asyncio.run(_client(handler).complete("s", "u"))


def test_complete_ollama_malformed_message():
    def handler(request):
        return httpx.Response(200, json={"message": ["x"]})

    client = _client(handler, provider="ollama", base_url="http://localhost:11434", api_key=None)
    with pytest.raises(AiCompletionError):
        asyncio.run(client.complete("s", "u"))


def test_complete_non_json_body_returned_verbatim():
    def handler(request):
        return httpx.Response(200, text="the service said something odd")

    assert asyncio.run(_client(handler).complete("s", "u")) == "the service said something odd"
