# app/providers/http.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.providers.base import TransientProviderError, is_retryable_http

logger = logging.getLogger("payouts.providers.http")

REDACTED_HEADERS = {"authorization", "x-merchant-id", "x-api-key"}


@dataclass
class HttpResponse:
    status_code: int
    json: Optional[dict[str, Any]]
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    """
    One POST per call: retries belong to the retry executor, so every attempt
    is bounded by its own timeout.
    """

    def __init__(self, timeout_s: float = 20.0, *, client: httpx.Client | None = None):
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)
        self.timeout_s = timeout_s

    def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: dict[str, Any] | None = None,
        debug: bool = False,
    ) -> HttpResponse:
        try:
            r = self._client.post(url, headers=headers, json=json_body, timeout=self.timeout_s)
        except httpx.TimeoutException as exc:
            raise TransientProviderError(f"timeout calling {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientProviderError(f"transport error calling {url}: {exc}") from exc
        if debug:
            self._debug_dump("POST", url, headers, json_body, r)
        return self._wrap(r)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _wrap(r: httpx.Response) -> HttpResponse:
        try:
            payload = r.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = None
        return HttpResponse(status_code=r.status_code, json=payload, text=r.text)

    @staticmethod
    def _debug_dump(method: str, url: str, headers: dict[str, str], json_body: Any, r: httpx.Response) -> None:
        safe_headers = {
            k: ("REDACTED" if k.lower() in REDACTED_HEADERS else v)
            for k, v in (headers or {}).items()
        }
        logger.debug("%s %s headers=%s json=%s -> status=%s text=%s", method, url, safe_headers, json_body, r.status_code, r.text[:300])


def error_message(resp: HttpResponse) -> str:
    body = resp.json or {}
    return str(body.get("message") or body.get("error") or "Unknown error")


def rejection_or_raise(resp: HttpResponse, *, label: str) -> str:
    """
    For a non-2xx response: raise TransientProviderError when the status is
    retryable, otherwise return the rejection reason.
    """
    reason = f"{label} API error: {resp.status_code} - {error_message(resp)}"
    if is_retryable_http(resp.status_code):
        raise TransientProviderError(reason, http_status=resp.status_code, response=resp.json)
    return reason
