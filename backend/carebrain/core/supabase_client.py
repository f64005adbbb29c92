"""
Supabase (PostgREST) client for brain RPCs and table reads
"""
from typing import Any, Dict, List, Optional

import httpx

from carebrain.core.config import Settings, get_settings
from carebrain.core.dispatch_errors import ErrorCode
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport, SupabaseError

logger = LoggingConfig.get_logger(__name__)


class SupabaseClient(BrainTransport):
    """
    Client for the Supabase REST API

    One HTTP request per call; no retries. Network failures and HTTP error
    responses are raised as SupabaseError.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def settings(self) -> Settings:
        """Lazy load settings"""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def _headers(self) -> Dict[str, str]:
        token = self.settings.supabase_access_token or self.settings.supabase_anon_key
        headers = {
            "apikey": self.settings.supabase_anon_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.rest_url,
                headers=self._headers(),
                timeout=self.settings.supabase_timeout_seconds,
                transport=self._transport,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                ),
            )
        return self._client

    @staticmethod
    def _error_from_response(response: httpx.Response) -> SupabaseError:
        """Build SupabaseError from a PostgREST error body when there is one"""
        code = f"HTTP_{response.status_code}"
        message = response.reason_phrase or "Request failed"
        details: Dict[str, Any] = {}
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("code") or code)
            message = str(body.get("message") or message)
            details = {k: body[k] for k in ("details", "hint") if body.get(k) is not None}
        return SupabaseError(code=code, message=message, status_code=response.status_code, details=details)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Supabase request timed out: {method} {path}")
            raise SupabaseError(ErrorCode.NETWORK_ERROR, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.warning(f"Supabase request failed: {method} {path}: {e}")
            raise SupabaseError(ErrorCode.NETWORK_ERROR, f"Could not reach backend: {e}") from e

        if response.status_code >= 400:
            error = self._error_from_response(response)
            logger.warning(
                "Supabase returned an error",
                extra={
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error.code,
                }
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SupabaseError(
                ErrorCode.MALFORMED_RESPONSE,
                "Response body is not JSON",
                status_code=response.status_code,
            ) from e

    async def rpc(self, function_name: str, params: Dict[str, Any]) -> Any:
        """POST /rpc/{function_name}"""
        logger.debug(f"Calling RPC {function_name}", extra={"rpc": function_name})
        return await self._request("POST", f"/rpc/{function_name}", json=params)

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """GET /{table} with eq. filters"""
        query: Dict[str, Any] = {"select": "*"}
        for column, value in (filters or {}).items():
            query[column] = f"eq.{value}"
        if order:
            query["order"] = order
        if limit is not None:
            query["limit"] = str(limit)
        rows = await self._request("GET", f"/{table}", params=query)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise SupabaseError(ErrorCode.MALFORMED_RESPONSE, f"Expected rows from {table}")
        return rows

    async def health_check(self) -> bool:
        """Check if the REST endpoint answers"""
        try:
            client = await self._get_client()
            response = await client.get("/", timeout=5.0)
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
