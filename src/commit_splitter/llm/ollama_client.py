"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API ``/api/generate``
endpoint. Connection failures, timeouts, HTTP errors, and malformed
responses are all raised as :class:`ExternalServiceError` so that the
caller can fall back to a degraded result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from commit_splitter.errors import ExternalServiceError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


THINKING_TAG_PATTERNS = [
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
]


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning blocks such as ``<think>...</think>`` from a response.

    Examples
    --------
    >>> strip_thinking_tags("<think>which files go together?</think>[]")
    '[]'
    """
    result = text
    for pattern in THINKING_TAG_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 30 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate, passed as ``num_predict``.
    temperature : float, optional
        Sampling temperature. Grouping wants stable answers, so the
        default is low.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 30.0
    max_tokens: Optional[int] = None
    temperature: float = 0.2

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}:{self.port}/api/generate"

    def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        prompt : str
            The prompt to send to the model.
        system : str, optional
            System prompt overriding the model's default.

        Returns
        -------
        str
            The generated text with reasoning blocks removed.

        Raises
        ------
        ExternalServiceError
            If the request fails, times out, or the server returns an error.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system
        options: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        payload["options"] = options

        url = self._endpoint()
        logger.debug("Sending request to LLM at %s (%d prompt chars)", url, len(prompt))
        try:
            response = requests.post(url, json=payload, timeout=self.request_timeout)
        except requests.Timeout as exc:
            logger.error("LLM request timed out after %.1fs", self.request_timeout)
            raise ExternalServiceError(
                f"LLM request timed out after {self.request_timeout:.0f}s"
            ) from exc
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise ExternalServiceError(str(exc)) from exc

        if response.status_code != 200:
            logger.error("LLM returned non-200 status %s: %s", response.status_code, response.text)
            raise ExternalServiceError(
                f"LLM returned status {response.status_code}: {response.text}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise ExternalServiceError("Failed to parse LLM response") from exc

        # /api/generate answers in 'response'; /api/chat style servers use 'message'
        if isinstance(data, dict) and "response" in data:
            return strip_thinking_tags(str(data.get("response") or ""))
        if isinstance(data, dict) and isinstance(data.get("message"), dict):
            return strip_thinking_tags(str(data["message"].get("content") or ""))
        raise ExternalServiceError("Unexpected response structure from LLM")
