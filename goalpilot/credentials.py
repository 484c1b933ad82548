"""Gemini credential pool with a shared, rotatable cursor."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from google import genai
from google.genai import types

from .config import GEMINI_API_KEYS, GENERATION_TEMPERATURE

ClientFactory = Callable[..., Any]


@dataclass(frozen=True)
class ModelHandle:
    """A model bound to one credential, handed to gateway operations."""

    client: Any
    model: str
    key_index: int

    @property
    def key_label(self) -> str:
        return f"Key #{self.key_index + 1}"

    def generate_text(
        self, prompt: str, *, temperature: float = GENERATION_TEMPERATURE
    ) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=temperature),
        )
        return getattr(response, "text", None) or ""


class CredentialPool:
    """Ordered API keys sharing one cursor.

    The cursor only moves through :meth:`rotate`, which is a compare-and-swap on
    the index a caller last observed. Two requests that hit a rate limit on the
    same key advance the cursor once, not twice.
    """

    def __init__(
        self,
        api_keys: Iterable[str],
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._keys: Tuple[str, ...] = tuple(
            key.strip() for key in api_keys if key and key.strip()
        )
        self._client_factory = client_factory or genai.Client
        self._clients: Dict[int, Any] = {}
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._index

    def rotate(self, observed_index: int) -> int:
        """Advance past ``observed_index`` if nobody else has yet.

        Returns the cursor after the call, whichever request moved it.
        """

        with self._lock:
            if self._keys and self._index == observed_index:
                self._index = (observed_index + 1) % len(self._keys)
            return self._index

    def handle(self, model: str, index: Optional[int] = None) -> ModelHandle:
        if not self._keys:
            raise IndexError("credential pool is empty")

        with self._lock:
            key_index = self._index if index is None else index % len(self._keys)
            client = self._clients.get(key_index)
            if client is None:
                client = self._client_factory(api_key=self._keys[key_index])
                self._clients[key_index] = client

        return ModelHandle(client=client, model=model, key_index=key_index)


credential_pool = CredentialPool(GEMINI_API_KEYS)
