from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from adapters.openai_oracle import ModelSettings, OpenAIOracle, parse_typo_verdict
from core.errors import OracleError
from core.models import ChatTurn, Direction, MessageRecord

SETTINGS = ModelSettings(model="gpt-test", temperature=0.5, max_tokens=100)


def _response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id: str, name: str, arguments: str):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class FakeCompletions:
    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _oracle(*responses):
    completions = FakeCompletions(responses)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    oracle = OpenAIOracle(
        client,
        reply=SETTINGS,
        assistant=ModelSettings("gpt-assistant", 0.7, 800),
        correction=ModelSettings("gpt-mini", 0.1, 300),
    )
    return oracle, completions


def test_plain_completion_uses_reply_model() -> None:
    oracle, completions = _oracle(_response("Ça va !"))

    completion = asyncio.run(
        oracle.complete("system", [ChatTurn("user", "coucou"), ChatTurn("assistant", "hey")], "ça va ?")
    )

    assert completion.text == "Ça va !"
    request = completions.requests[0]
    assert request["model"] == "gpt-test"
    assert [message["role"] for message in request["messages"]] == ["system", "user", "assistant", "user"]
    assert "tools" not in request


def test_tool_loop_runs_web_search() -> None:
    oracle, completions = _oracle(
        _response(tool_calls=[_tool_call("call-1", "web_search", json.dumps({"query": "météo Paris"}))]),
        _response("Il fait 20°C"),
    )

    completion = asyncio.run(oracle.complete("system", [], "météo ?", tools=("web_search",)))

    assert completion.text == "Il fait 20°C"
    assert completion.tool_invocations == ("web_search",)
    first, second = completions.requests
    assert first["model"] == "gpt-assistant"
    assert first["tools"][0]["function"]["name"] == "web_search"
    tool_message = second["messages"][-1]
    assert tool_message["role"] == "tool"
    assert tool_message["tool_call_id"] == "call-1"
    assert "météo Paris" in tool_message["content"]


def test_tool_loop_gives_up_after_max_rounds() -> None:
    loop_call = _response(tool_calls=[_tool_call("c", "web_search", "{not json")])
    oracle, completions = _oracle(loop_call, loop_call, loop_call, _response("Voilà"))

    completion = asyncio.run(oracle.complete("system", [], "?", tools=("web_search",)))

    assert completion.text == "Voilà"
    assert len(completions.requests) == 4
    assert "tools" not in completions.requests[-1]
    assert completions.requests[-1]["messages"][-1]["content"] == "Arguments invalides"


def test_api_errors_become_oracle_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    oracle, _ = _oracle(openai.APIConnectionError(request=request))

    with pytest.raises(OracleError):
        asyncio.run(oracle.complete("system", [], "hello"))


def test_typo_check_uses_json_mode_and_context() -> None:
    oracle, completions = _oracle(
        _response(json.dumps({"hasTypos": True, "correctedText": "Salut", "confidence": 88}))
    )
    context = [MessageRecord("a", "336", Direction.INBOUND, "tu fais quoi", 1)]

    verdict = asyncio.run(oracle.check_typos("Slaut", context))

    assert verdict.has_typos and verdict.corrected_text == "Salut" and verdict.confidence == 88
    request = completions.requests[0]
    assert request["model"] == "gpt-mini"
    assert request["response_format"] == {"type": "json_object"}
    assert "Contact: tu fais quoi" in request["messages"][0]["content"]


def test_parse_typo_verdict() -> None:
    verdict = parse_typo_verdict('{"has_typos": true, "corrected_text": "ok", "confidence": "75.5"}')
    assert verdict.has_typos and verdict.confidence == 75

    for raw in (None, "", "not json", "[1]", '{"confidence": "high"}'):
        with pytest.raises(OracleError):
            parse_typo_verdict(raw)
