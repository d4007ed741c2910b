"""HTTP client for talking to a PushPlay server.

Sync flavour for ``pushplay-ctl``, async flavour for the Textual remote.
Both speak the phone-app endpoints (``/control``, ``/upload`` ...) as well
as the ``/api/*`` ones.
"""

import logging
import os
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
UPLOAD_TIMEOUT = 300.0


class PushPlayAPIError(Exception):
    """Error communicating with a PushPlay server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_from(exc: httpx.HTTPError, base_url: str) -> PushPlayAPIError:
    if isinstance(exc, httpx.ConnectError):
        return PushPlayAPIError(f"Cannot connect to {base_url}")
    if isinstance(exc, httpx.TimeoutException):
        return PushPlayAPIError("Request timed out")
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            message = exc.response.json().get("error") or str(exc)
        except ValueError:
            message = str(exc)
        return PushPlayAPIError(message, exc.response.status_code)
    return PushPlayAPIError(str(exc))


class PushPlayClient:
    """HTTP client for the PushPlay API.

    Usage:
        client = PushPlayClient("192.168.1.20", 3000)
        client.control("next")
        client.upload("clip.mp4")
    """

    def __init__(self, host: str = "localhost", port: int = 3000, transport: httpx.BaseTransport | None = None):
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._client = httpx.Client(base_url=self.base_url, timeout=DEFAULT_TIMEOUT, transport=transport)

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise _error_from(e, self.base_url) from e

    # --- Phone-app endpoints ---

    def control(self, command: str) -> dict:
        return self._request("GET", "/control", params={"command": command})

    def upload(self, path: str) -> dict:
        with open(path, "rb") as f:
            files = {"file": (os.path.basename(path), f)}
            return self._request("POST", "/upload", files=files, timeout=UPLOAD_TIMEOUT)

    def list_files(self) -> list[dict]:
        return self._request("GET", "/files")

    def delete_file(self, name: str) -> dict:
        return self._request("DELETE", f"/delete/{name}")

    def get_memory(self) -> dict:
        return self._request("GET", "/memory")

    # --- Player API ---

    def get_status(self) -> dict:
        return self._request("GET", "/api/status")

    def get_health(self) -> dict:
        return self._request("GET", "/api/health")

    def get_playlist(self) -> list[dict]:
        return self._request("GET", "/api/playlist")

    def play_index(self, index: int) -> dict:
        return self._request("POST", f"/api/playlist/{index}/play")

    def remove_index(self, index: int) -> dict:
        return self._request("DELETE", f"/api/playlist/{index}")

    def set_aspect_ratio(self, mode: str) -> dict:
        return self._request("POST", "/api/aspect-ratio", json={"mode": mode})

    def window(self, action: str) -> dict:
        return self._request("POST", f"/api/window/{action}")


class AsyncPushPlayClient:
    """Async HTTP client for the PushPlay API.

    For use with Textual's async workers.
    """

    def __init__(self, host: str = "localhost", port: int = 3000, transport: httpx.AsyncBaseTransport | None = None):
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=DEFAULT_TIMEOUT, transport=transport)

    async def close(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise _error_from(e, self.base_url) from e

    async def control(self, command: str) -> dict:
        return await self._request("GET", "/control", params={"command": command})

    async def get_status(self) -> dict:
        return await self._request("GET", "/api/status")

    async def get_memory(self) -> dict:
        return await self._request("GET", "/memory")

    async def play_index(self, index: int) -> dict:
        return await self._request("POST", f"/api/playlist/{index}/play")

    async def remove_index(self, index: int) -> dict:
        return await self._request("DELETE", f"/api/playlist/{index}")

    async def window(self, action: str) -> dict:
        return await self._request("POST", f"/api/window/{action}")
