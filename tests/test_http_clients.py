"""Tests for HTTP-based adapters."""

import asyncio

import httpx
import pytest
from openai import APITimeoutError, RateLimitError

from nutrition_chat.adapters.openai_chat_client import OpenAIChatClient
from nutrition_chat.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from nutrition_chat.domain.chat import ChatTurn
from nutrition_chat.domain.errors import (
    ModelQuotaError,
    ModelTimeoutError,
    ModelUnavailableError,
)

_OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


class _FakeResponses:
    def __init__(
        self, output_text: str = "Hallo", error: Exception | None = None
    ) -> None:
        self.output_text = output_text
        self.error = error
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def test_openfoodfacts_client_sends_search_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": [{"code": "1"}]})

    transport = httpx.MockTransport(handler)
    client = HttpxOpenFoodFactsClient(
        base_url="https://world.openfoodfacts.org",
        user_agent="nutrition-chat-tests/1.0",
        http_client=httpx.AsyncClient(transport=transport),
    )

    result = asyncio.run(client.search_products("Skyr Natur", page_size=5))

    assert result == {"products": [{"code": "1"}]}
    request = seen[0]
    assert request.url.path == "/cgi/search.pl"
    assert request.url.params["search_terms"] == "Skyr Natur"
    assert request.url.params["page_size"] == "5"
    assert request.url.params["json"] == "1"
    assert "nutriments" in request.url.params["fields"]
    assert request.headers["User-Agent"] == "nutrition-chat-tests/1.0"


def test_openfoodfacts_client_raises_on_http_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    client = HttpxOpenFoodFactsClient(
        base_url="https://world.openfoodfacts.org",
        user_agent="tests",
        http_client=httpx.AsyncClient(transport=transport),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.search_products("skyr"))


def test_openai_chat_client_maps_history_roles() -> None:
    responses = _FakeResponses(output_text="Notiert!")
    client = OpenAIChatClient(client=_FakeOpenAI(responses), model="gpt-4o-mini")
    history = [
        ChatTurn(role="user", content="Hallo"),
        ChatTurn(role="model", content="Hi!"),
    ]

    result = asyncio.run(client.send("ein Apfel", history, "Anweisungen"))

    assert result == "Notiert!"
    assert responses.last_payload == {
        "model": "gpt-4o-mini",
        "instructions": "Anweisungen",
        "input": [
            {"role": "user", "content": "Hallo"},
            {"role": "assistant", "content": "Hi!"},
            {"role": "user", "content": "ein Apfel"},
        ],
        "temperature": 0.3,
    }


def test_openai_chat_client_rejects_empty_output() -> None:
    client = OpenAIChatClient(
        client=_FakeOpenAI(_FakeResponses(output_text="")), model="gpt-4o-mini"
    )

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.send("Hallo", [], ""))


def test_openai_chat_client_maps_sdk_errors() -> None:
    timeout = _FakeResponses(error=APITimeoutError(request=_OPENAI_REQUEST))
    rate_limited = _FakeResponses(
        error=RateLimitError(
            "quota",
            response=httpx.Response(429, request=_OPENAI_REQUEST),
            body=None,
        )
    )

    with pytest.raises(ModelTimeoutError):
        asyncio.run(
            OpenAIChatClient(_FakeOpenAI(timeout), "gpt-4o-mini").send("a", [], "")
        )
    with pytest.raises(ModelQuotaError):
        asyncio.run(
            OpenAIChatClient(_FakeOpenAI(rate_limited), "gpt-4o-mini").send(
                "a", [], ""
            )
        )
