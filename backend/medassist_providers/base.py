from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import httpx

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code


class MissingCredentialsError(ProviderError):
    pass


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    base_url: str
    api_key: str
    model: str = ""


def require_api_key(provider: str, env_var: str) -> str:
    api_key = (os.getenv(env_var) or "").strip()
    if not api_key:
        raise MissingCredentialsError(provider, f"{env_var} is not configured.")
    return api_key


def request_timeout(connect: float = 8.0) -> httpx.Timeout:
    total = float(os.getenv("MEDASSIST_MAX_DURATION_SECONDS", "60"))
    return httpx.Timeout(total, connect=min(connect, total))


def provider_error_message(response: httpx.Response) -> str:
    message = response.text.strip()
    try:
        payload = response.json()
    except Exception:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        msg = payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
        detail = payload.get("detail")
        if isinstance(detail, dict):
            msg = detail.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
    return message or f"HTTP {response.status_code}"


def _http_client() -> httpx.Client:
    return httpx.Client(timeout=request_timeout())


def send_request(provider: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
        with _http_client() as client:
            response = client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise ProviderError(provider, "provider timed out") from exc
    except httpx.HTTPError as exc:
        raise ProviderError(provider, f"failed to reach provider: {exc}") from exc
    if response.status_code >= 400:
        raise ProviderError(provider, provider_error_message(response), response.status_code)
    return response


def response_json(provider: str, response: httpx.Response) -> Any:
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        raise ProviderError(provider, "provider returned invalid JSON") from exc


def iter_sse_data(lines: Iterator[str]) -> Iterator[str]:
    """Yield the payload of every ``data:`` line of an upstream SSE body."""
    for raw_line in lines:
        line = raw_line.strip("\r")
        if not line.startswith("data:"):
            continue
        yield line[5:].strip()


class UpstreamStream:
    """An open streaming response from a provider.

    The HTTP exchange is started eagerly so status errors surface before the
    caller commits to a streamed reply; iterating yields text deltas and
    closes the connection once exhausted.
    """

    def __init__(
        self,
        provider: str,
        method: str,
        url: str,
        *,
        extract: Callable[[Any], str | None],
        **request_kwargs: Any,
    ) -> None:
        self.provider = provider
        self._extract = extract
        self._client = _http_client()
        try:
            request = self._client.build_request(method, url, **request_kwargs)
            self._response = self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            self._client.close()
            raise ProviderError(provider, "provider timed out") from exc
        except httpx.HTTPError as exc:
            self._client.close()
            raise ProviderError(provider, f"failed to reach provider: {exc}") from exc
        if self._response.status_code >= 400:
            self._response.read()
            message = provider_error_message(self._response)
            status_code = self._response.status_code
            self.close()
            raise ProviderError(provider, message, status_code)

    def __iter__(self) -> Iterator[str]:
        try:
            for data in iter_sse_data(self._response.iter_lines()):
                if not data:
                    continue
                if data == "[DONE]":
                    break
                try:
                    payload = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("%s stream sent a non-JSON frame", self.provider)
                    continue
                text = self._extract(payload)
                if text:
                    yield text
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider, f"stream interrupted: {exc}") from exc
        finally:
            self.close()

    def close(self) -> None:
        response = getattr(self, "_response", None)
        if response is not None:
            response.close()
        self._client.close()
