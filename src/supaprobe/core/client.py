"""
Async client handle for a Supabase project

One handle wraps one URL + API key pair and a single long-lived
``httpx.AsyncClient``. It speaks PostgREST under ``/rest/v1`` and GoTrue
under ``/auth/v1``. Every call returns an ``APIResponse``; only transport
failures raise.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from supaprobe.core.query import build_query, encode_filters, parse_content_range
from supaprobe.models.operations import OrderByClause, WhereClause
from supaprobe.models.results import APIError, APIResponse
from supaprobe.utils.error_handling import sanitize_data

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"
AUTH_PATH = "/auth/v1"
SINGLE_OBJECT = "application/vnd.pgrst.object+json"


@dataclass
class AuthSession:
    """Session returned by a successful sign-in"""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthSession":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type", "bearer"),
            expires_in=payload.get("expires_in"),
            expires_at=payload.get("expires_at"),
            user=payload.get("user") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
            "user": self.user,
        }


def normalize_error(status_code: int, body: Any) -> APIError:
    """Build an APIError from a PostgREST or GoTrue error body"""
    if isinstance(body, dict):
        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {status_code}"
        )
        code = body.get("code") if isinstance(body.get("code"), str) else None
        code = code or body.get("error_code") or (body.get("error") if body.get("error") != message else None)
        details = body.get("details")
        return APIError(
            message=str(message),
            code=str(code) if code is not None else None,
            status_code=status_code,
            details=str(details) if details is not None else None,
            hint=body.get("hint"),
        )

    text = str(body).strip() if body else ""
    return APIError(message=text or f"HTTP {status_code}", status_code=status_code)


class BackendClient:
    """Client handle for table, auth and admin calls"""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        tier: str = "anon",
    ):
        if not url or not api_key:
            raise ValueError("BackendClient needs both a URL and an API key")
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self.tier = tier
        self.session: Optional[AuthSession] = None
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BackendClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"apikey": self._api_key},
            )

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _bearer(self, use_session: bool = True) -> str:
        if use_session and self.session is not None:
            return self.session.access_token
        return self._api_key

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        use_session: bool = True,
    ) -> Tuple[httpx.Response, Any]:
        """Send one request and return the raw response with its parsed body"""
        if self._http is None:
            await self.open()

        request_headers = {"Authorization": f"Bearer {self._bearer(use_session)}"}
        if json_body is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        logger.debug(f"{method} {path} params={params} body={sanitize_data(json_body)}")
        start = time.time()
        response = await self._http.request(
            method, path, params=params, json=json_body, headers=request_headers
        )
        logger.debug(f"{method} {path} -> {response.status_code} in {time.time() - start:.3f}s")

        if not response.content:
            return response, None
        try:
            parsed = response.json()
        except ValueError:
            parsed = response.text
        return response, parsed

    def _to_response(self, response: httpx.Response, body: Any, data: Any = None) -> APIResponse:
        if response.status_code >= 400:
            error = normalize_error(response.status_code, body)
            logger.debug(f"API error: {error}")
            return APIResponse(error=error, status_code=response.status_code)
        return APIResponse(
            data=body if data is None else data,
            count=parse_content_range(response.headers.get("content-range")),
            status_code=response.status_code,
        )

    # === Tables ===

    async def select(
        self,
        table: str,
        select: str = "*",
        where: Iterable[WhereClause] = (),
        any_of: Iterable[WhereClause] = (),
        order_by: Iterable[OrderByClause] = (),
        limit: Optional[int] = None,
        single: bool = False,
    ) -> APIResponse:
        params = build_query(select, where, any_of, order_by, limit)
        headers = {"Accept": SINGLE_OBJECT} if single else {}
        response, body = await self.request("GET", f"{REST_PATH}/{table}", params=params, headers=headers)
        return self._to_response(response, body)

    async def insert(self, table: str, values: Any, single: bool = True) -> APIResponse:
        headers = {"Prefer": "return=representation"}
        if single and isinstance(values, dict):
            headers["Accept"] = SINGLE_OBJECT
        response, body = await self.request(
            "POST", f"{REST_PATH}/{table}", params=[("select", "*")], json_body=values, headers=headers
        )
        return self._to_response(response, body)

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        where: Iterable[WhereClause],
        single: bool = True,
    ) -> APIResponse:
        filters = encode_filters(where)
        if not filters:
            raise ValueError(f"Refusing to update {table} without a filter")
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = SINGLE_OBJECT
        response, body = await self.request(
            "PATCH", f"{REST_PATH}/{table}", params=[("select", "*")] + filters,
            json_body=values, headers=headers
        )
        return self._to_response(response, body)

    async def delete(self, table: str, where: Iterable[WhereClause]) -> APIResponse:
        filters = encode_filters(where)
        if not filters:
            raise ValueError(f"Refusing to delete from {table} without a filter")
        response, body = await self.request(
            "DELETE", f"{REST_PATH}/{table}", params=filters,
            headers={"Prefer": "return=representation"}
        )
        result = self._to_response(response, body)
        if result.ok:
            result.count = len(result.rows)
        return result

    async def count(self, table: str, where: Iterable[WhereClause] = ()) -> APIResponse:
        params = build_query("*", where)
        response, body = await self.request(
            "HEAD", f"{REST_PATH}/{table}", params=params, headers={"Prefer": "count=exact"}
        )
        result = self._to_response(response, body)
        if result.ok:
            result.data = result.count
        return result

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> APIResponse:
        response, body = await self.request("POST", f"{REST_PATH}/rpc/{function}", json_body=params or {})
        return self._to_response(response, body)

    # === Auth ===

    async def sign_in_with_password(self, email: str, password: str) -> APIResponse:
        response, body = await self.request(
            "POST", f"{AUTH_PATH}/token", params=[("grant_type", "password")],
            json_body={"email": email, "password": password}, use_session=False
        )
        result = self._to_response(response, body)
        if not result.ok:
            self.session = None
            return result

        if not isinstance(body, dict) or "access_token" not in body:
            self.session = None
            return APIResponse(
                error=APIError("Sign-in response carried no access token", status_code=response.status_code),
                status_code=response.status_code,
            )

        self.session = AuthSession.from_payload(body)
        logger.info(f"Signed in as {self.session.user.get('email', email)}")
        result.data = {"user": self.session.user, "session": self.session.to_dict()}
        return result

    async def sign_up(self, email: str, password: str) -> APIResponse:
        response, body = await self.request(
            "POST", f"{AUTH_PATH}/signup",
            json_body={"email": email, "password": password}, use_session=False
        )
        result = self._to_response(response, body)
        if not result.ok:
            return result

        body = body if isinstance(body, dict) else {}
        if "access_token" in body:
            # Projects without email confirmation hand out a session immediately
            self.session = AuthSession.from_payload(body)
            result.data = {"user": self.session.user, "session": self.session.to_dict()}
        else:
            result.data = {"user": body.get("user", body), "session": None}
        return result

    async def sign_out(self) -> APIResponse:
        if self.session is None:
            return APIResponse(status_code=204)

        response, body = await self.request("POST", f"{AUTH_PATH}/logout")
        self.session = None
        result = self._to_response(response, body)
        if result.ok:
            logger.info("Signed out")
        return result

    def get_session(self) -> APIResponse:
        """Locally held session, never touches the network"""
        session = self.session.to_dict() if self.session else None
        return APIResponse(data={"session": session}, status_code=200)

    async def get_user(self) -> APIResponse:
        if self.session is None:
            return APIResponse(error=APIError("Auth session missing!", code="session_missing"))
        response, body = await self.request("GET", f"{AUTH_PATH}/user")
        return self._to_response(response, body)

    # === Admin (service role) ===

    async def admin_list_users(self, page: int = 1, per_page: int = 50) -> APIResponse:
        response, body = await self.request(
            "GET", f"{AUTH_PATH}/admin/users",
            params=[("page", str(page)), ("per_page", str(per_page))], use_session=False
        )
        users = body.get("users", []) if isinstance(body, dict) else body
        return self._to_response(response, body, data=users)

    async def admin_create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool = True,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        payload = {"email": email, "password": password, "email_confirm": email_confirm}
        if user_metadata:
            payload["user_metadata"] = user_metadata
        response, body = await self.request(
            "POST", f"{AUTH_PATH}/admin/users", json_body=payload, use_session=False
        )
        return self._to_response(response, body)

    async def admin_update_user(self, user_id: str, attributes: Dict[str, Any]) -> APIResponse:
        response, body = await self.request(
            "PUT", f"{AUTH_PATH}/admin/users/{user_id}", json_body=attributes, use_session=False
        )
        return self._to_response(response, body)

    async def admin_delete_user(self, user_id: str) -> APIResponse:
        response, body = await self.request(
            "DELETE", f"{AUTH_PATH}/admin/users/{user_id}", use_session=False
        )
        return self._to_response(response, body)
