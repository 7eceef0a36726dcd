"""
app/services/api_client.py

Purpose: HTTP client for the Capitalized backend

- Single httpx.AsyncClient shared by all services
- Attaches the bearer token to authenticated calls
- On 401: one forced refresh, then one replay of the request
- Maps transport failures and HTTP statuses onto the error taxonomy
"""

from typing import Any, Dict, Optional

import httpx

from app.core.exceptions import (
    AuthenticationError,
    CapitalizedError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NetworkError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger
from utils.constants import ERROR_MESSAGES

logger = get_logger(__name__)


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """
    Pulls a human readable message out of an error body.

    Understands {"detail": "..."}, FastAPI's {"detail": [{"msg": ...}]},
    {"message": "..."} and {"error": "..."}.
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] if text else None

    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        messages = [item.get("msg") for item in detail if isinstance(item, dict) and item.get("msg")]
        if messages:
            return "; ".join(messages)

    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def error_from_response(response: httpx.Response) -> CapitalizedError:
    """
    Converts a non-2xx response into the matching CapitalizedError.
    """
    status = response.status_code
    message = extract_error_message(response)
    details = {"status_code": status, "path": response.request.url.path}

    if status in (400, 422):
        return ValidationError(message or ERROR_MESSAGES["validation"], details=details)
    if status == 401:
        return AuthenticationError(message or ERROR_MESSAGES["unauthorized"], details=details)
    if status == 403:
        return ForbiddenError(message or ERROR_MESSAGES["forbidden"], details=details)
    if status == 404:
        return ResourceNotFoundError(message or ERROR_MESSAGES["not_found"], details=details)
    if status == 409:
        return ConflictError(message or ERROR_MESSAGES["conflict"], details=details)
    if status >= 500:
        return ExternalServiceError(message or ERROR_MESSAGES["server"], details=details)
    return ExternalServiceError(
        message or f"Unexpected response status {status}",
        details=details,
    )


class ApiClient:
    """
    Thin wrapper around httpx.AsyncClient.

    Args:
        base_url: Backend API root, e.g. https://api.example.com/api/v1
        timeout: Default per-request timeout in seconds
        token_manager: Supplies and refreshes access tokens; attach later
            with attach_token_manager when the manager depends on this client
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token_manager=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token_manager = token_manager
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def attach_token_manager(self, token_manager) -> None:
        self.token_manager = token_manager

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            return await self._client.request(
                method,
                path,
                json=json,
                params=params,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Backend timeout: {method} {path}")
            raise NetworkError(ERROR_MESSAGES["timeout"], details={"path": path}) from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling backend: {method} {path}: {e}")
            raise NetworkError(details={"path": path}) from e

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                "Backend returned an unreadable response",
                details={"path": response.request.url.path},
            ) from e

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Performs a backend call and returns the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to base_url
            json: Optional JSON body
            params: Optional query parameters
            authenticated: Attach the bearer token and handle 401 by refreshing
            timeout: Override of the default timeout

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            CapitalizedError subclass matching the failure
        """
        token = None
        if authenticated:
            if self.token_manager is None:
                raise AuthenticationError("No token manager configured for authenticated calls")
            token = await self.token_manager.ensure_valid_access_token()

        response = await self._send(method, path, json=json, params=params, token=token, timeout=timeout)

        if response.status_code == 401 and authenticated:
            logger.info(f"401 from {path}, refreshing token and replaying once")
            token = await self.token_manager.refresh_access_token(stale_token=token)
            response = await self._send(method, path, json=json, params=params, token=token, timeout=timeout)

            if response.status_code == 401:
                logger.warning(f"Backend rejected a freshly refreshed token on {path}")
                await self.token_manager.force_logout("Refreshed token rejected")

        if response.is_error:
            error = error_from_response(response)
            logger.warning(
                f"Backend error {response.status_code} on {method} {path}: {error.message}"
            )
            raise error

        return self._parse(response)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)
