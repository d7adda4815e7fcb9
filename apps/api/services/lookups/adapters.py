"""Vendor adapters: one per credential/request quirk, all behind one interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config import settings, vendor_timeout
from services.lookups.types import VendorRequest, VendorResult

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid response format: Expected JSON"


class BaseVendorAdapter(ABC):
    vendor: str

    @abstractmethod
    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        raise NotImplementedError

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(vendor_timeout(self.vendor))

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Tuple[Optional[httpx.Response], Optional[VendorResult]]:
        """Issue one request. Returns ``(response, None)`` or ``(None, failure)``."""
        timeout = self._timeout()
        try:
            response = await client.request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException:
            seconds = vendor_timeout(self.vendor)
            logger.warning("Vendor %s timed out after %.1fs: %s %s", self.vendor, seconds, method, url)
            return None, VendorResult.failure(f"Vendor request timed out after {seconds:g}s")
        except httpx.RequestError as exc:
            logger.warning("Vendor %s request error: %s", self.vendor, exc)
            return None, VendorResult.failure(f"Vendor request failed: {exc.__class__.__name__}")

        if not response.is_success:
            logger.info("Vendor %s returned HTTP %s for %s", self.vendor, response.status_code, url)
            return None, VendorResult.failure(
                f"API request failed: {response.status_code} {response.reason_phrase}".strip(),
                payload=_safe_body(response),
                http_status=response.status_code,
            )
        return response, None

    @staticmethod
    def _json(response: httpx.Response) -> Tuple[Any, Optional[VendorResult]]:
        try:
            return response.json(), None
        except ValueError:
            return None, VendorResult.failure(
                INVALID_JSON_MESSAGE,
                payload={"raw": response.text[:500]},
                http_status=response.status_code,
            )


def _safe_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text[:500]}


def split_credential(credential: str, parts: int) -> Optional[List[str]]:
    """Split a colon-delimited credential into exactly ``parts`` non-empty fields."""
    fields = [item.strip() for item in str(credential or "").split(":")]
    if len(fields) < parts or not all(fields[:parts]):
        return None
    if len(fields) > parts:
        # Trailing colons belong to the last field (passwords may contain them).
        fields = fields[: parts - 1] + [":".join(fields[parts - 1:])]
    return fields


class SignzyAdapter(BaseVendorAdapter):
    """Bearer-style JSON POST with the raw credential as ``Authorization``."""

    vendor = "signzy"

    def __init__(self, path: str, success_field: str = "result") -> None:
        self.path = path
        self.success_field = success_field

    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        headers = {
            "Authorization": credential,
            "Content-Type": "application/json",
        }
        if request.client_reference:
            headers["x-client-unique-id"] = request.client_reference
        url = f"{settings.SIGNZY_BASE_URL.rstrip('/')}{self.path}"
        response, failure = await self._send(client, "POST", url, headers=headers, json=request.params)
        if failure:
            return failure
        data, failure = self._json(response)
        if failure:
            return failure
        if not isinstance(data, dict) or not data.get(self.success_field):
            return VendorResult.failure(
                f"No {self.success_field} returned by vendor",
                payload=data,
                http_status=response.status_code,
            )
        return VendorResult.success(data, http_status=response.status_code)


class PlanApiHeaderAdapter(BaseVendorAdapter):
    """JSON POST with ``ApiUserID:ApiPassword:TokenID`` split into custom headers."""

    vendor = "planapi"

    def __init__(self, path: str) -> None:
        self.path = path

    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        fields = split_credential(credential, 3)
        if not fields:
            return VendorResult.failure("Invalid API key format: Expected ApiUserID:ApiPassword:TokenID")
        api_user_id, api_password, token_id = fields
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "TokenID": token_id,
            "ApiUserID": api_user_id,
            "ApiPassword": api_password,
        }
        url = f"{settings.PLANAPI_BASE_URL.rstrip('/')}{self.path}"
        response, failure = await self._send(client, "POST", url, headers=headers, json=request.params)
        if failure:
            return failure
        data, failure = self._json(response)
        if failure:
            return failure
        if not isinstance(data, dict) or str(data.get("status", "")) != "Success":
            message = data.get("msg") if isinstance(data, dict) else None
            return VendorResult.failure(
                f"Vendor reported failure: {message or 'Unknown error'}",
                payload=data,
                http_status=response.status_code,
            )
        return VendorResult.success(data, http_status=response.status_code)


class PlanApiQueryAdapter(BaseVendorAdapter):
    """GET with the credential carried in the query string."""

    vendor = "planapi"

    def __init__(self, path: str) -> None:
        self.path = path

    def credential_params(self, credential: str) -> Optional[Dict[str, str]]:
        fields = split_credential(credential, 2)
        if not fields:
            return None
        return {"ApiUserID": fields[0], "ApiPassword": fields[1]}

    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        auth_params = self.credential_params(credential)
        if auth_params is None:
            return VendorResult.failure("Invalid API key format")
        url = f"{settings.PLANAPI_BASE_URL.rstrip('/')}{self.path}"
        params = {**auth_params, **request.params}
        response, failure = await self._send(client, "GET", url, params=params)
        if failure:
            return failure
        data, failure = self._json(response)
        if failure:
            return failure
        if not isinstance(data, dict):
            return VendorResult.failure(INVALID_JSON_MESSAGE, payload=data, http_status=response.status_code)
        error_flag = str(data.get("ERROR", "0") or "0").strip()
        if error_flag not in {"0", ""}:
            return VendorResult.failure(
                f"Vendor reported failure: {data.get('Message') or 'Unknown error'}",
                payload=data,
                http_status=response.status_code,
            )
        return VendorResult.success(data, http_status=response.status_code)


class PlanApiMemberQueryAdapter(PlanApiQueryAdapter):
    """Query-string variant keyed by the account member id plus the password credential."""

    def credential_params(self, credential: str) -> Optional[Dict[str, str]]:
        password = str(credential or "").strip()
        member_id = (settings.PLANAPI_MEMBER_ID or "").strip()
        if not password or not member_id:
            return None
        return {"Apimember_Id": member_id, "Api_Password": password}


class DeepvueAdapter(BaseVendorAdapter):
    """Two-step exchange: client credentials for an access token, then a bearer GET."""

    vendor = "deepvue"

    def __init__(self, path: str) -> None:
        self.path = path

    async def _access_token(
        self,
        client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
    ) -> Tuple[Optional[str], Optional[VendorResult]]:
        url = f"{settings.DEEPVUE_BASE_URL.rstrip('/')}/v1/authorize"
        response, failure = await self._send(
            client,
            "POST",
            url,
            data={"client_id": client_id, "client_secret": client_secret},
        )
        if failure:
            return None, VendorResult.failure(
                f"Vendor authentication failed: {failure.message}",
                payload=failure.payload,
                http_status=failure.http_status,
            )
        data, failure = self._json(response)
        if failure:
            return None, failure
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            return None, VendorResult.failure("Access token not found in authentication response")
        return str(token), None

    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        fields = split_credential(credential, 2)
        if not fields:
            return VendorResult.failure("Invalid API key format: Expected client_secret:client_id")
        client_secret, client_id = fields

        token, failure = await self._access_token(client, client_id, client_secret)
        if failure:
            return failure

        url = f"{settings.DEEPVUE_BASE_URL.rstrip('/')}{self.path}"
        headers = {
            "Authorization": f"Bearer {token}",
            "x-api-key": client_secret,
            "Content-Type": "application/json",
        }
        response, failure = await self._send(client, "GET", url, headers=headers, params=request.params)
        if failure:
            return failure
        data, failure = self._json(response)
        if failure:
            return failure
        if not isinstance(data, dict) or data.get("code") != 200:
            message = data.get("message") if isinstance(data, dict) else None
            return VendorResult.failure(
                f"Vendor reported failure: {message or 'Unknown error'}",
                payload=data,
                http_status=response.status_code,
            )
        return VendorResult.success(data, http_status=response.status_code)


class LeakOsintAdapter(BaseVendorAdapter):
    """JSON POST with the token inside the request body."""

    vendor = "leakosint"

    async def call(self, credential: str, request: VendorRequest, client: httpx.AsyncClient) -> VendorResult:
        token = str(credential or "").strip()
        if not token:
            return VendorResult.failure("Invalid API key format")
        body = {
            "token": token,
            "limit": min(max(int(settings.LEAKOSINT_RESULT_LIMIT), 100), 10000),
            "lang": settings.LEAKOSINT_LANG,
            **request.params,
        }
        url = f"{settings.LEAKOSINT_BASE_URL.rstrip('/')}/"
        response, failure = await self._send(client, "POST", url, json=body)
        if failure:
            return failure
        data, failure = self._json(response)
        if failure:
            return failure
        if not isinstance(data, dict) or "Error code" in data or "List" not in data:
            message = data.get("Error code") if isinstance(data, dict) else None
            return VendorResult.failure(
                f"Vendor reported failure: {message or 'Unknown error'}",
                payload=data,
                http_status=response.status_code,
            )
        return VendorResult.success(data, http_status=response.status_code)
