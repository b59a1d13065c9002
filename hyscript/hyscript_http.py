"""
A minimal async Hydrus client API wrapper, used by the `File` constructor.
"""
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

import httpx

from hyscript.hyscript_errors import EvaluationError

DEFAULT_API_URL = "http://localhost:45869"
ACCESS_KEY_HEADER = "Hydrus-Client-API-Access-Key"


def encode_params(params: Dict[str, Any]) -> Dict[str, str]:
    """Query parameters as the client API expects them: lists and mappings
    JSON-encoded, booleans lower-case."""
    out = {}
    for key, value in params.items():
        match value:
            case None:
                continue
            case bool():
                out[key] = "true" if value else "false"
            case list() | tuple() | dict():
                out[key] = json.dumps(list(value) if isinstance(value, tuple) else value)
            case _:
                out[key] = str(value)
    return out


class HydrusClient:
    """Talks to a Hydrus client API over HTTP.

    Connection settings fall back to the HYDRUS_API_URL and HYDRUS_API_KEY
    environment variables. Pass `transport` to route requests somewhere other
    than the network (e.g. an httpx.MockTransport).
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: float = 5.0, retries: int = 2, backoff: float = 0.2,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or os.environ.get("HYDRUS_API_URL") or DEFAULT_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else os.environ.get("HYDRUS_API_KEY", "")
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self.transport = transport

    def _dbg(self, *parts):
        if os.environ.get("HYSCRIPT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    async def request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Sends one request and returns the decoded body.

        Transport failures and 5xx responses are retried with exponential
        backoff. Any other non-2xx response raises EvaluationError at once.
        """
        from hyscript.hyscript_serialize import deserialize
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json", ACCESS_KEY_HEADER: self.api_key}
        query = encode_params(params or {})

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            last_exc = None
            for attempt in range(self.retries + 1):
                try:
                    self._dbg(method, url, query, f"(attempt {attempt + 1})")
                    resp = await client.request(method, url, headers=headers, params=query)
                    if 200 <= resp.status_code < 300:
                        return deserialize(resp.content, content_type=resp.headers.get("Content-Type"))
                    if resp.status_code < 500:
                        raise EvaluationError(self._error_message(resp))
                    last_exc = EvaluationError(self._error_message(resp))
                except httpx.HTTPError as e:
                    last_exc = EvaluationError(f"API request to {url} failed: {e}")
                if attempt < self.retries:
                    await asyncio.sleep(self.backoff * (2 ** attempt))
            raise last_exc

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        text = resp.text or ""
        try:
            detail = json.loads(text).get("error")
        except (ValueError, AttributeError):
            detail = None
        return f"API error: {resp.status_code} - {detail or text[:200]}"

    async def get_file_metadata(self, file_ids: Sequence[int]) -> List[dict]:
        body = await self.request("GET", "/get_files/file_metadata",
                                  {"file_ids": list(file_ids), "include_notes": True})
        return list((body or {}).get("metadata", []))

    async def get_file_metadata_by_hashes(self, hashes: Sequence[str]) -> List[dict]:
        body = await self.request("GET", "/get_files/file_metadata",
                                  {"hashes": list(hashes), "include_notes": True})
        return list((body or {}).get("metadata", []))
