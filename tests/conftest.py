import os
from types import SimpleNamespace
from typing import Callable, List

import pytest

os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from goalpilot.credentials import CredentialPool  # noqa: E402


class FakeModels:
    """Stands in for ``genai.Client().models``; replies come from a callable."""

    def __init__(self, api_key: str, reply: Callable[[str, str], str]) -> None:
        self.api_key = api_key
        self.reply = reply
        self.calls: List[str] = []

    def generate_content(self, *, model, contents, config):
        self.calls.append(contents)
        return SimpleNamespace(text=self.reply(self.api_key, contents))


@pytest.fixture()
def make_pool() -> Callable[..., CredentialPool]:
    """Build a pool whose clients answer through ``reply(api_key, prompt)``."""

    def _make(keys, reply=lambda api_key, prompt: "{}"):
        return CredentialPool(
            keys,
            client_factory=lambda api_key: SimpleNamespace(
                models=FakeModels(api_key, reply)
            ),
        )

    return _make
