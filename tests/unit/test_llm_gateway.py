import json

import pytest
from langchain_core.prompts import ChatPromptTemplate

from config.registry import ANALYZER_KEY, get_model
from config.routes import AppConfig, LlmRoute
from llm_gateway import LlmGatewayError, bind_routes, call_json, reasoning_runnable, route_call


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    @property
    def text(self):
        return json.dumps(self._body, default=str)


class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _reply(content):
    return FakeResponse(body={"choices": [{"message": {"content": content}}]})


def _route(**overrides):
    base = {
        "name": "local",
        "base_url": "http://llm.test",
        "endpoint": "/v1/chat/completions",
        "model": "base-model",
    }
    base.update(overrides)
    return LlmRoute(**base)


MESSAGES = [{"role": "system", "content": "Return JSON"}, {"role": "user", "content": "hi"}]


def test_call_json_parses_content(monkeypatch):
    monkeypatch.setenv("LLM_TEST_KEY", "secret")
    client = FakeClient(_reply('{"question": "Why?"}'))
    result = call_json(MESSAGES, cfg=_route(api_key_env="LLM_TEST_KEY"), temperature=0.2, client=client)

    assert result == {"question": "Why?"}
    call = client.calls[0]
    assert call["url"] == "http://llm.test/v1/chat/completions"
    assert call["json"]["model"] == "base-model"
    assert call["json"]["temperature"] == 0.2
    assert call["json"]["response_format"] == {"type": "json_object"}
    assert call["headers"]["Authorization"] == "Bearer secret"


def test_call_json_strips_code_fences():
    client = FakeClient(_reply('```json\n{"ok": true}\n```'))
    assert call_json(MESSAGES, cfg=_route(), client=client) == {"ok": True}


def test_call_json_requests_repair_once():
    client = FakeClient(_reply("Sure! here it is: ok=true"), _reply('{"ok": true}'))
    assert call_json(MESSAGES, cfg=_route(), client=client) == {"ok": True}
    assert len(client.calls) == 2
    repair = client.calls[1]["json"]["messages"]
    assert repair[0]["role"] == "user"
    assert repair[0]["content"].startswith("Fix this into valid JSON only.")


def test_call_json_without_repair_raises():
    client = FakeClient(_reply("not json"))
    with pytest.raises(LlmGatewayError):
        call_json(MESSAGES, cfg=_route(repair_json=False), client=client)
    assert len(client.calls) == 1


def test_fallback_model_after_error_status():
    client = FakeClient(FakeResponse(status_code=500, body={}), _reply('{"ok": 1}'))
    result = call_json(MESSAGES, cfg=_route(fallback_model="backup-model"), client=client)
    assert result == {"ok": 1}
    assert [call["json"]["model"] for call in client.calls] == ["base-model", "backup-model"]


def test_error_status_without_fallback_raises():
    client = FakeClient(FakeResponse(status_code=503, body={}))
    with pytest.raises(LlmGatewayError):
        call_json(MESSAGES, cfg=_route(), client=client)


def test_transport_failure_raises_gateway_error():
    client = FakeClient(ConnectionError("refused"))
    with pytest.raises(LlmGatewayError):
        call_json(MESSAGES, cfg=_route(), client=client)


def test_json_array_is_rejected():
    client = FakeClient(_reply("[1, 2]"), _reply("[3]"))
    with pytest.raises(LlmGatewayError):
        call_json(MESSAGES, cfg=_route(), client=client)


def test_reasoning_runnable_with_prompt_template():
    seen = {}

    def fake_llm(messages, *, model, temperature):
        seen.update(messages=messages, model=model, temperature=temperature)
        return {"answer_quality": "strong"}

    prompt = ChatPromptTemplate.from_messages([("system", "Analyze."), ("human", "Answer: {answer}")])
    chain = prompt | reasoning_runnable(fake_llm, model="m1", temperature=0.1)

    assert chain.invoke({"answer": "I shipped it"}) == {"answer_quality": "strong"}
    assert seen["messages"] == [
        {"role": "system", "content": "Analyze."},
        {"role": "user", "content": "Answer: I shipped it"},
    ]
    assert (seen["model"], seen["temperature"]) == ("m1", 0.1)


def test_route_call_uses_requested_model():
    client = FakeClient(_reply('{"ok": true}'))
    call = route_call(_route(), client=client)
    assert call(MESSAGES, model="controller-model", temperature=0.15) == {"ok": True}
    assert client.calls[0]["json"]["model"] == "controller-model"


def test_bind_routes_registers_calls():
    client = FakeClient(_reply('{"ok": true}'))
    cfg = AppConfig(llm_routes={"local": _route()}, registry={ANALYZER_KEY: "local"})
    bind_routes(cfg, [ANALYZER_KEY], client=client)
    assert get_model(ANALYZER_KEY)(MESSAGES, model="", temperature=0.1) == {"ok": True}
    assert client.calls[0]["json"]["model"] == "base-model"
