"""Shared httpx plumbing for the backend REST API.

Maps transport failures to TransientNetworkError and HTTP or envelope
errors to ServiceResponseError, so callers retry on one taxonomy instead of
httpx internals.
"""

import logging
from types import TracebackType
from typing import Any

import httpx

from ragchat.config import Settings, get_settings
from ragchat.errors import ServiceResponseError, TransientNetworkError
from ragchat.normalize.response import is_success_response

logger = logging.getLogger(__name__)

# Backend's connection-pool failure; the upload usually succeeded anyway
POOL_ERROR_MARKER = "trying to put unkeyed connection"

STATUS_MESSAGES: dict[int, str] = {
    401: "Sessão expirada. Por favor, faça login novamente.",
    403: "Você não tem permissão para acessar este recurso.",
    404: "Recurso não encontrado.",
    413: "Arquivo muito grande para envio.",
    429: "Muitas requisições. Aguarde alguns instantes e tente novamente.",
}


def build_api_url(base_url: str) -> str:
    """Normalize the base URL so it ends in exactly one ``/api``."""
    url = base_url.rstrip("/")
    if not url.endswith("/api"):
        url = f"{url}/api"
    return url


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _field(payload: Any, *keys: str) -> str | None:
    if not isinstance(payload, dict):
        return None
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def describe_error(status_code: int | None, payload: Any) -> str:
    """User-facing message for a failed call."""
    server_message = _field(payload, "message", "error")
    if status_code in STATUS_MESSAGES:
        return STATUS_MESSAGES[status_code]
    if server_message:
        return server_message
    if status_code is not None and status_code >= 500:
        return "Erro no servidor. Tente novamente mais tarde."
    return "Erro ao comunicar com o servidor."


def is_network_error(error: BaseException) -> bool:
    """Connection resets, timeouts and other transport failures."""
    return isinstance(error, TransientNetworkError | httpx.TransportError)


def is_pool_error(error: BaseException) -> bool:
    """Backend reported its connection-pool bug."""
    if not isinstance(error, ServiceResponseError):
        return False
    haystack = " ".join(part for part in (error.details, str(error), str(error.payload)) if part)
    return POOL_ERROR_MARKER in haystack


def is_network_or_pool_error(error: BaseException) -> bool:
    return is_network_error(error) or is_pool_error(error)


class BackendClient:
    """Thin async JSON client for the chat backend.

    Owns its httpx.AsyncClient unless one is injected (tests inject one
    built on httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout_s: float | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = build_api_url(base_url or settings.api_base_url)
        if token is None and settings.api_token is not None:
            token = settings.api_token.get_secret_value()
        self._token = token
        self._timeout_s = timeout_s or settings.request_timeout_s
        self._client = client
        self._close_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout_s: float | None = None,
    ) -> Any:
        """Send one request and return the decoded body.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            params: Query parameters (None values dropped)
            json: JSON body
            data: Form fields (multipart when combined with files)
            files: Multipart files
            timeout_s: Per-request timeout override

        Returns:
            Decoded JSON (or text) body

        Raises:
            TransientNetworkError: Timeout or transport failure
            ServiceResponseError: HTTP error status or error envelope
        """
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = data
        if files is not None:
            kwargs["files"] = files
        if timeout_s is not None:
            kwargs["timeout"] = timeout_s

        try:
            response = await self._get_client().request(method, self.url(path), **kwargs)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{method} {path} failed: {type(e).__name__}") from e

        payload = _decode(response)
        if response.is_error or (isinstance(payload, dict) and not is_success_response(payload)):
            details = _field(payload, "details", "error", "message")
            logger.warning(
                f"Backend error: {method} {path} - {response.status_code}",
                extra={"structured": {"method": method, "path": path, "status_code": response.status_code}},
            )
            raise ServiceResponseError(
                describe_error(response.status_code if response.is_error else None, payload),
                status_code=response.status_code,
                details=details,
                payload=payload,
            )
        return payload

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        if self._close_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
