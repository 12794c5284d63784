"""Streaming adapter around OpenAI-compatible chat completion backends."""

from __future__ import annotations

import ipaddress
import json
import os
import socket
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..errors import BackendError, BackendErrorCategory
from ..logging import get_logger
from ..prompting.builder import ReportRequest

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()


@dataclass
class LLMRequest:
    """Represents a single streaming inference request."""

    system: str
    prompt: str
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]
    response_schema: Optional[Dict[str, Any]] = None


class LLMRunner:
    """Streams report text from the configured generation backend."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    ENV_MODEL_KEYS = ("REPOSENSE_LLM_MODEL", "OPENAI_MODEL")
    ENV_DEEP_MODEL_KEYS = ("REPOSENSE_LLM_DEEP_MODEL",)
    ENV_BASE_URL_KEYS = ("REPOSENSE_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("REPOSENSE_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        deep_model: str | None = None,
        base_url: str | None | object = _AUTO_BASE_URL,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        transport: Callable[[LLMRequest], Iterable[str]] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.deep_model = deep_model or self._first_env_value(self.ENV_DEEP_MODEL_KEYS)
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._transport = transport or self._http_transport
        self.logger = get_logger("llm")

    def stream(self, request: ReportRequest, *, api_key: str | None = None) -> Iterator[str]:
        """Yield text chunks for ``request`` in the order the backend produces them."""
        model = self.deep_model if request.deep_reasoning and self.deep_model else self.model
        llm_request = LLMRequest(
            system=request.system,
            prompt=request.prompt,
            model=model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=api_key or self.api_key,
            request_timeout=self.request_timeout,
            response_schema=request.response_schema,
        )
        if not llm_request.api_key and not self._is_local_url(llm_request.base_url):
            raise BackendError(
                BackendErrorCategory.INVALID_CREDENTIAL,
                "API key is missing. Provide one via --api-key or REPOSENSE_LLM_API_KEY.",
            )
        self.logger.debug("Streaming report from %s (model=%s)", llm_request.base_url, model)
        chunks = self._transport(llm_request)
        try:
            for chunk in chunks:
                if chunk:
                    yield chunk
        finally:
            # Release the HTTP response if the consumer stops early.
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

    @staticmethod
    def _http_transport(request: LLMRequest) -> Iterator[str]:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
            "stream": True,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "repository_report", "schema": request.response_schema},
            }

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 120.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                for raw_line in response:
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    if not line.startswith("data:"):
                        continue
                    data_part = line[len("data:") :].strip()
                    if data_part == "[DONE]":
                        return
                    try:
                        event = json.loads(data_part)
                    except json.JSONDecodeError as exc:
                        raise BackendError(
                            BackendErrorCategory.MALFORMED_RESPONSE,
                            "Generation backend sent an undecodable stream event.",
                        ) from exc
                    text = LLMRunner._extract_delta(event)
                    if text:
                        yield text
        except HTTPError as exc:
            raise LLMRunner._http_error(exc) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise BackendError(
                BackendErrorCategory.SERVICE_UNAVAILABLE, "Generation backend timed out."
            ) from exc
        except URLError as exc:
            raise BackendError(
                BackendErrorCategory.SERVICE_UNAVAILABLE,
                f"Generation backend is unreachable: {exc.reason}",
            ) from exc

    @staticmethod
    def _http_error(exc: HTTPError) -> BackendError:
        detail = ""
        try:
            detail = exc.read().decode("utf-8", errors="ignore").strip()
        except (OSError, AttributeError):
            detail = ""
        suffix = f": {detail}" if detail else ""
        if exc.code in {401, 403}:
            return BackendError(
                BackendErrorCategory.INVALID_CREDENTIAL,
                f"Generation backend rejected the API key ({exc.code}){suffix}",
            )
        if exc.code == 429:
            return BackendError(
                BackendErrorCategory.QUOTA_EXCEEDED,
                "Too many requests or quota exceeded. Please wait a moment.",
            )
        if exc.code >= 500:
            return BackendError(
                BackendErrorCategory.SERVICE_UNAVAILABLE,
                f"Generation backend is temporarily unavailable ({exc.code}).",
            )
        return BackendError(
            BackendErrorCategory.MALFORMED_RESPONSE,
            f"Generation backend refused the request ({exc.code}){suffix}",
        )

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_delta(payload: Any) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        delta = first.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_base_url(self, base_url: str | None | object) -> str:
        if base_url is _AUTO_BASE_URL or base_url is None:
            resolved = self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        else:
            resolved = str(base_url)
        return resolved.rstrip("/")

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None

    @staticmethod
    def _is_local_url(url: str) -> bool:
        host = urlparse(url).hostname
        if host is None:
            return False
        lowered = host.lower()
        if lowered in {"localhost", "0.0.0.0", "model-runner.docker.internal"}:
            return True
        if lowered.endswith((".local", ".localdomain")):
            return True
        try:
            return ipaddress.ip_address(lowered).is_loopback
        except ValueError:
            return False


__all__ = ["LLMRequest", "LLMRunner"]
