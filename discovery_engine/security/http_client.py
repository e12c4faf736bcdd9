"""Outbound HTTP client shared by every external adapter.

Responsibilities:
  1. scrub API keys out of exception messages
  2. uniform timeout / retry policy, capped by environment
  3. isolate the httpx dependency
"""

from __future__ import annotations

import os
import time
from typing import Any, Optional

import httpx

from discovery_engine.security.key_manager import get_key_manager
from discovery_engine.shared.exceptions import ToolError


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class SecureHttpClient:
    def __init__(
        self,
        *,
        timeout: float = 10.0,
        max_retries: int = 1,
        tool_name: str = "http",
    ):
        cap = _env_float("TOOL_HTTP_TIMEOUT_CAP_SECONDS", 30.0)
        floor = _env_float("TOOL_HTTP_TIMEOUT_FLOOR_SECONDS", 1.0)
        self._timeout = min(max(float(timeout), floor), cap)
        self._max_retries = max(0, min(int(max_retries), _env_int("TOOL_HTTP_RETRY_CAP", 2)))
        self._tool_name = tool_name
        self._km = get_key_manager()

    @property
    def timeout(self) -> float:
        return self._timeout

    def get(
        self,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        return self._request("GET", url, params=params, headers=headers)

    def post_json(
        self,
        url: str,
        *,
        payload: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        return self._request("POST", url, json=payload, headers=headers)

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        last_error: Optional[ToolError] = None

        for attempt in range(1, self._max_retries + 2):
            try:
                resp = httpx.request(method, url, timeout=self._timeout, **kwargs)
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                safe_msg = self._km.scrub_text(str(e))
                last_error = ToolError(self._tool_name, f"HTTP {e.response.status_code}: {safe_msg}")
                if e.response.status_code < 500:
                    break
            except httpx.TimeoutException:
                last_error = ToolError(
                    self._tool_name,
                    f"request timed out after {self._timeout}s (attempt {attempt})",
                )
            except httpx.HTTPError as e:
                last_error = ToolError(self._tool_name, f"network error: {self._km.scrub_text(str(e))}")
            except ValueError as e:
                last_error = ToolError(self._tool_name, f"invalid JSON response: {self._km.scrub_text(str(e))}")
                break

            if attempt <= self._max_retries:
                time.sleep(0.5 * attempt)

        raise last_error  # type: ignore[misc]
