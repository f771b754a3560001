"""OpenAI integration for aicommits.

One chat completion request per run; the API produces all ``n`` candidates.
Each returned body is trimmed, flattened to a single line and stripped of a
trailing period before duplicates are dropped.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Optional

import httpx
import openai
from openai import OpenAI

from .config import Configuration
from .exceptions import APIError, LLMError, NetworkError, NoMessagesError
from .prompt import build_system_prompt

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
TOP_P = 1
MAX_TOKENS = 200

_TRAILING_PERIOD = re.compile(r"(\w)\.$")


def sanitize_message(message: str) -> str:
    """Trim, drop line breaks and strip one trailing period after a word."""
    flattened = re.sub(r"[\n\r]", "", message.strip())
    return _TRAILING_PERIOD.sub(r"\1", flattened)


def deduplicate(messages: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(messages))


def process_candidates(contents: Iterable[Optional[str]]) -> List[str]:
    sanitized = (sanitize_message(c) for c in contents if c)
    return deduplicate(m for m in sanitized if m)


def capitalize(message: str) -> str:
    return message[:1].upper() + message[1:]


def _status_error_message(error: openai.APIStatusError) -> str:
    body: Any = error.body
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict):
            body = nested
        message = body.get("message")
        if message:
            return str(message)
    reason = getattr(error.response, "reason_phrase", "") or ""
    return f"OpenAI API Error: {error.status_code} - {reason}"


class LLMClient:
    """Generates commit message candidates for a staged diff."""

    def __init__(self, config: Configuration) -> None:
        self.config = config

    def _build_client(self) -> Any:
        timeout = self.config.timeout / 1000
        kwargs: dict[str, Any] = {
            "api_key": self.config.api_key,
            "timeout": timeout,
            "max_retries": 0,
        }
        if self.config.proxy:
            # Scoped to this client; the process environment is left alone.
            kwargs["http_client"] = httpx.Client(proxy=self.config.proxy, timeout=timeout)
        return OpenAI(**kwargs)

    def _build_messages(self, diff: str) -> list[dict[str, str]]:
        system_content = build_system_prompt(
            self.config.locale, self.config.max_length, self.config.commit_type
        )
        return [
            {"role": "system", "content": system_content},
            {"role": "user", "content": diff},
        ]

    def generate(self, diff: str) -> List[str]:
        """Return sanitized, de-duplicated candidates for ``diff``.

        Raises:
            NetworkError: The API could not be reached or timed out.
            APIError: The API rejected the request.
            NoMessagesError: No usable candidate came back.
            LLMError: Any other failure reported by the OpenAI SDK.
        """
        logger.debug(
            "Requesting %d completion(s) from model=%s timeout=%dms proxy=%s",
            self.config.generate,
            self.config.model,
            self.config.timeout,
            self.config.proxy or "-",
        )
        try:
            # Closing the OpenAI client also closes an injected http_client.
            with self._build_client() as client:
                response = client.chat.completions.create(
                    model=self.config.model,
                    messages=self._build_messages(diff),
                    temperature=TEMPERATURE,
                    top_p=TOP_P,
                    max_tokens=MAX_TOKENS,
                    n=self.config.generate,
                )
        except openai.APITimeoutError as exc:
            raise NetworkError(
                f"Time out error: request took over {self.config.timeout} ms. "
                "Try increasing the `timeout` config, or checking the OpenAI "
                "API status https://status.openai.com"
            ) from exc
        except openai.APIConnectionError as exc:
            raise NetworkError(
                "Error connecting to OpenAI API. Check your internet connection."
            ) from exc
        except openai.APIStatusError as exc:
            raise APIError(_status_error_message(exc), exc.status_code) from exc
        except openai.APIError as exc:
            raise LLMError(f"OpenAI API Error: {exc}") from exc

        contents = []
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            contents.append(getattr(message, "content", None))
        messages = process_candidates(contents)
        logger.debug("Received %d choice(s), %d usable", len(contents), len(messages))
        if not messages:
            raise NoMessagesError("No commit messages were generated. Try again.")
        return messages
