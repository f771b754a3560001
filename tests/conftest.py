import types
from collections.abc import Generator
from pathlib import Path

import pytest

from aicommits.config import CONFIG_PATH_ENV, ConfigKey

_ENV_VARS = (
    "OPENAI_KEY",
    "OPENAI_API_KEY",
    "https_proxy",
    "HTTPS_PROXY",
    "http_proxy",
    "HTTP_PROXY",
)


@pytest.fixture(autouse=True)
def isolated_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[Path, None, None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for key in ConfigKey:
        monkeypatch.delenv(key.env_var, raising=False)
    cfg_path = tmp_path / ".aicommits"
    monkeypatch.setenv(CONFIG_PATH_ENV, str(cfg_path))
    yield cfg_path


class FakeOpenAI:
    """Records client kwargs and chat.completions.create requests."""

    def __init__(self) -> None:
        self.contents: list = ["Fix login bug."]
        self.error: Exception | None = None
        self.client_kwargs: dict = {}
        self.requests: list[dict] = []
        self.closed = False
        self.chat = types.SimpleNamespace(
            completions=types.SimpleNamespace(create=self._create)
        )

    def __call__(self, **kwargs):
        self.client_kwargs = kwargs
        self.closed = False
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        http_client = self.client_kwargs.get("http_client")
        if http_client is not None:
            http_client.close()

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return types.SimpleNamespace(
            choices=[
                types.SimpleNamespace(message=types.SimpleNamespace(content=c))
                for c in self.contents
            ]
        )


@pytest.fixture
def fake_openai(monkeypatch: pytest.MonkeyPatch) -> FakeOpenAI:
    fake = FakeOpenAI()
    monkeypatch.setattr("aicommits.llm.OpenAI", fake)
    return fake
