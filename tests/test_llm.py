import os

import httpx
import openai
import pytest

from aicommits.config import Configuration
from aicommits.exceptions import APIError, LLMError, NetworkError, NoMessagesError
from aicommits.llm import (
    LLMClient,
    capitalize,
    deduplicate,
    process_candidates,
    sanitize_message,
)
from aicommits.prompt import build_system_prompt

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Fix bug.\n", "Fix bug"),
        ("Fix v1.0.", "Fix v1.0"),
        ("  Add login form  ", "Add login form"),
        ("Update docs\r\nand readme.", "Update docsand readme"),
        ("Wait for it...", "Wait for it..."),
        ("Bump to 2.", "Bump to 2"),
        ("Use e.g. helpers", "Use e.g. helpers"),
    ],
)
def test_sanitize_message(raw, expected):
    assert sanitize_message(raw) == expected


def test_sanitize_strips_only_one_period_after_word():
    assert sanitize_message("Done..") == "Done.."
    assert sanitize_message("Done .") == "Done ."


def test_process_candidates_dedupes_in_first_seen_order():
    raw = ["Fix a.", "Other", "Fix a", None, "", "  ", "Other.\n"]
    assert process_candidates(raw) == ["Fix a", "Other"]


def test_process_candidates_is_idempotent():
    raw = ["Fix bug.\n", "Fix bug", "Add v1.0.", "Refactor\nutils."]
    once = process_candidates(raw)
    assert process_candidates(once) == once
    assert deduplicate(deduplicate(once)) == once


def test_capitalize():
    assert capitalize("fix login") == "Fix login"
    assert capitalize("") == ""


def test_generate_request_shape(fake_openai):
    fake_openai.contents = ["Fix login bug.", "Fix login bug", "Repair auth flow."]
    cfg = Configuration(api_key="sk-test", generate=3, timeout=2500, locale="de")

    messages = LLMClient(cfg).generate("diff --git a/login.py")

    assert messages == ["Fix login bug", "Repair auth flow"]
    assert fake_openai.client_kwargs == {
        "api_key": "sk-test",
        "timeout": 2.5,
        "max_retries": 0,
    }
    (request,) = fake_openai.requests
    assert request["model"] == "gpt-3.5-turbo"
    assert request["temperature"] == 0.7
    assert request["top_p"] == 1
    assert request["max_tokens"] == 200
    assert request["n"] == 3
    system, user = request["messages"]
    assert system["role"] == "system"
    assert "Message language: de" in system["content"]
    assert user == {"role": "user", "content": "diff --git a/login.py"}


def test_generate_uses_scoped_proxy_client(fake_openai):
    cfg = Configuration(api_key="sk-test", proxy="http://proxy.local:8080")

    LLMClient(cfg).generate("diff")

    http_client = fake_openai.client_kwargs["http_client"]
    assert isinstance(http_client, httpx.Client)
    assert http_client.is_closed
    assert fake_openai.closed
    assert "HTTPS_PROXY" not in os.environ
    assert "https_proxy" not in os.environ


def test_generate_closes_client_on_error(fake_openai):
    fake_openai.error = openai.APIConnectionError(request=_REQUEST)
    with pytest.raises(NetworkError):
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert fake_openai.closed


def test_generate_no_usable_candidates(fake_openai):
    fake_openai.contents = [None, "", "   \n"]
    with pytest.raises(NoMessagesError) as ei:
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert "No commit messages were generated" in str(ei.value)


def test_generate_timeout_is_network_error(fake_openai):
    fake_openai.error = openai.APITimeoutError(request=_REQUEST)
    with pytest.raises(NetworkError) as ei:
        LLMClient(Configuration(api_key="sk-test", timeout=800)).generate("diff")
    assert "800 ms" in str(ei.value)


def test_generate_connection_error(fake_openai):
    fake_openai.error = openai.APIConnectionError(request=_REQUEST)
    with pytest.raises(NetworkError) as ei:
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert "Check your internet connection" in str(ei.value)


def test_generate_status_error_surfaces_payload_message(fake_openai):
    response = httpx.Response(401, request=_REQUEST)
    fake_openai.error = openai.AuthenticationError(
        "Error code: 401",
        response=response,
        body={"message": "Incorrect API key provided: sk-test."},
    )
    with pytest.raises(APIError) as ei:
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert str(ei.value) == "Incorrect API key provided: sk-test."
    assert ei.value.status_code == 401


def test_generate_status_error_without_payload(fake_openai):
    response = httpx.Response(429, request=_REQUEST)
    fake_openai.error = openai.APIStatusError(
        "Error code: 429", response=response, body=None
    )
    with pytest.raises(APIError) as ei:
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert str(ei.value) == "OpenAI API Error: 429 - Too Many Requests"


def test_system_prompt_plain():
    prompt = build_system_prompt("en", 50, "")
    assert "maximum of 50 characters" in prompt
    assert prompt.endswith("<commit message>")
    assert "feat" not in prompt


def test_system_prompt_conventional():
    prompt = build_system_prompt("fr", 72, "conventional")
    assert "Message language: fr" in prompt
    assert '"feat": "A new feature"' in prompt
    assert prompt.endswith("<type>(<optional scope>): <commit message>")


def test_generate_other_sdk_errors_are_llm_errors(fake_openai):
    fake_openai.error = openai.APIResponseValidationError(
        response=httpx.Response(200, request=_REQUEST), body=None
    )
    with pytest.raises(LLMError) as ei:
        LLMClient(Configuration(api_key="sk-test")).generate("diff")
    assert not isinstance(ei.value, (APIError, NetworkError))
    assert str(ei.value).startswith("OpenAI API Error:")
