"""Ollama adapter implementing the LanguageModelPort."""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request


class OllamaClient:
    """Single-prompt completions through Ollama's /api/generate endpoint."""

    def __init__(self, endpoint: str, model: str = "llama2", timeout: int = 120) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._model = model
        self._timeout = timeout

    def _generate(self, prompt: str) -> str:
        payload = {"model": self._model, "prompt": prompt, "stream": False}
        request = urllib.request.Request(
            f"{self._endpoint}/api/generate",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
        )
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Ollama API error {e.code}: {detail}") from e
        return str(body.get("response", ""))

    async def complete(self, prompt: str) -> str:
        return await asyncio.to_thread(self._generate, prompt)
