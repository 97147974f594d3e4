"""
Completion backend for an Ollama server.

Selected with `provider: ollama` in config.yaml; `base_url` is the server URL
and OLLAMA_API_KEY, when set, is sent as a bearer token.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from ollama import AsyncClient


class OllamaBackend:
    def __init__(self, host: str | None, api_key: str | None = None):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = AsyncClient(host=host, headers=headers)

    async def complete(self, model: str, messages: List[Dict[str, str]]) -> List[str]:
        response = await self.client.chat(model=model, messages=messages)
        message = getattr(response, "message", None)
        if message is None:
            return []
        logging.debug("OllamaBackend: response content=%r", message.content)
        return [message.content or ""]
