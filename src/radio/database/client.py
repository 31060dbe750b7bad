"""
Backend Client
Async REST client for the PocketBase-compatible backend-as-a-service
"""

import base64
import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from ..core.logging import baas_logger


class BaaSError(Exception):
    """Error response (or transport failure) from the backend"""

    def __init__(self, message: str, status: int = 0, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data or {}

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class AuthStore:
    """Token and auth record carried by one client handle"""

    def __init__(self, token: Optional[str] = None, record: Optional[dict] = None):
        self.token = token
        self.record = record

    def save(self, token: Optional[str], record: Optional[dict] = None) -> None:
        self.token = token
        self.record = record

    def clear(self) -> None:
        self.token = None
        self.record = None

    @property
    def is_valid(self) -> bool:
        """True when a token is present and its JWT expiry is in the future"""
        if not self.token:
            return False
        exp = _token_expiry(self.token)
        return exp is None or exp > time.time()


def _token_expiry(token: str) -> Optional[float]:
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        padded = parts[1] + "=" * (-len(parts[1]) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded))
    except (ValueError, TypeError):
        return None
    exp = payload.get("exp") if isinstance(payload, dict) else None
    return float(exp) if isinstance(exp, (int, float)) else None


class RecordService:
    """Generic collection API: list, filter, sort, paginate, CRUD"""

    def __init__(self, client: "BaaSClient", collection: str):
        self.client = client
        self.collection = collection

    @property
    def base_path(self) -> str:
        return f"/api/collections/{self.collection}"

    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        sort: Optional[str] = None,
        filter: Optional[str] = None,
        expand: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get one page of records: {page, perPage, totalItems, totalPages, items}"""
        params = {"page": page, "perPage": per_page}
        params.update(_query(sort=sort, filter=filter, expand=expand, fields=fields))
        return await self.client.send("GET", f"{self.base_path}/records", params=params)

    async def get_full_list(
        self,
        batch: int = 500,
        sort: Optional[str] = None,
        filter: Optional[str] = None,
        expand: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every matching record page by page"""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            result = await self.get_list(page, batch, sort=sort, filter=filter, expand=expand, fields=fields)
            page_items = result.get("items", [])
            items.extend(page_items)
            if len(page_items) < batch:
                return items
            page += 1

    async def get_first_list_item(
        self,
        filter: str,
        sort: Optional[str] = None,
        expand: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get the first record matching filter or raise a 404 BaaSError"""
        result = await self.get_list(1, 1, sort=sort, filter=filter, expand=expand)
        items = result.get("items", [])
        if not items:
            raise BaaSError("The requested resource wasn't found.", status=404)
        return items[0]

    async def get_one(self, record_id: str, expand: Optional[str] = None) -> Dict[str, Any]:
        if not record_id:
            raise BaaSError("Missing record id.", status=404)
        return await self.client.send(
            "GET", f"{self.base_path}/records/{record_id}", params=_query(expand=expand)
        )

    async def create(self, data: Dict[str, Any], files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.client.send("POST", f"{self.base_path}/records", body=data, files=files)

    async def update(
        self,
        record_id: str,
        data: Dict[str, Any],
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.client.send(
            "PATCH", f"{self.base_path}/records/{record_id}", body=data, files=files
        )

    async def delete(self, record_id: str) -> bool:
        await self.client.send("DELETE", f"{self.base_path}/records/{record_id}")
        return True

    async def auth_refresh(self) -> Dict[str, Any]:
        """Refresh the carried token; the new token and record replace the old ones"""
        result = await self.client.send("POST", f"{self.base_path}/auth-refresh")
        self.client.auth_store.save(result.get("token"), result.get("record"))
        return result

    async def auth_with_oauth2_code(
        self,
        provider: str,
        code: str,
        code_verifier: str,
        redirect_url: str,
    ) -> Dict[str, Any]:
        result = await self.client.send(
            "POST",
            f"{self.base_path}/auth-with-oauth2",
            body={
                "provider": provider,
                "code": code,
                "codeVerifier": code_verifier,
                "redirectURL": redirect_url,
            },
        )
        self.client.auth_store.save(result.get("token"), result.get("record"))
        return result


class BaaSClient:
    """Handle to the backend pointed at one base URL, optionally carrying a token"""

    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        self.http = http
        self.auth_store = AuthStore(token)

    def collection(self, name: str) -> RecordService:
        return RecordService(self, name)

    async def send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and decode the JSON response, raising BaaSError on failure"""

        headers = {}
        if self.auth_store.token:
            headers["Authorization"] = self.auth_store.token

        request_kwargs: Dict[str, Any] = {"params": params, "headers": headers}
        if files:
            request_kwargs["data"] = _form_fields(body or {})
            request_kwargs["files"] = files
        elif body is not None:
            request_kwargs["json"] = body

        try:
            response = await self.http.request(method, path, **request_kwargs)
        except httpx.HTTPError as e:
            baas_logger.log_request_failed(method, path, 0, str(e))
            raise BaaSError(f"Backend request failed: {e}", status=0) from e

        if response.status_code == 204 or not response.content:
            payload: Any = {}
        else:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}

        if response.status_code >= 400:
            message = payload.get("message", "") if isinstance(payload, dict) else str(payload)
            baas_logger.log_request_failed(method, path, response.status_code, message)
            raise BaaSError(
                message or f"Backend returned {response.status_code}",
                status=response.status_code,
                data=payload.get("data") if isinstance(payload, dict) else None,
            )

        return payload

    async def health(self) -> bool:
        try:
            await self.send("GET", "/api/health")
            baas_logger.log_health(True)
            return True
        except BaaSError as e:
            baas_logger.log_health(False, e.message)
            return False

    @staticmethod
    def filter(expr: str, **params: Any) -> str:
        """Bind {:name} placeholders in a filter expression with escaped literals"""
        for key, value in params.items():
            expr = expr.replace("{:" + key + "}", _literal(value))
        return expr


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        value = value.strftime("%Y-%m-%d %H:%M:%S.%fZ")
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def _query(**kwargs: Optional[str]) -> Dict[str, str]:
    return {key: value for key, value in kwargs.items() if value}


def _form_fields(data: Dict[str, Any]) -> Dict[str, str]:
    fields = {}
    for key, value in data.items():
        if value is None:
            fields[key] = ""
        elif isinstance(value, bool):
            fields[key] = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            fields[key] = json.dumps(value)
        else:
            fields[key] = str(value)
    return fields
