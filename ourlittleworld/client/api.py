"""
Async HTTP client for the OurLittleWorld API (httpx).

Non-2xx responses are raised as the same error types the server uses, so
callers (and the mutation coordinator) handle one taxonomy on both sides.
The session cookie set by /auth/login is kept by the underlying
httpx.AsyncClient.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ourlittleworld.application.errors import (
    Forbidden, InvalidBudget, NotFound, Unauthorized, UpstreamFailure, ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class ClientSettings:
    base_url: str = "http://127.0.0.1:8000"
    timeout: float = 10.0


def _jsonable(value: Any) -> Any:
    """Decimal -> str, date -> ISO; the API takes amounts as strings"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _compact(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    message = detail if isinstance(detail, str) else ""
    status = response.status_code

    if status >= 500:
        raise UpstreamFailure(message or f"Server error ({status})")
    if status == 401:
        raise Unauthorized(message or "Not authenticated")
    if status == 403:
        raise Forbidden(message or "Forbidden")
    if status == 404:
        raise NotFound(message or "Not found")
    if isinstance(body, dict) and body.get("difference") is not None:
        raise InvalidBudget(message, difference=Decimal(str(body["difference"])))
    # 400 / 422; field-level pydantic errors come back as a list
    raise ValidationError(message or "Please check the form and try again.")


class OurLittleWorldClient:
    """
    Usage:
        async with OurLittleWorldClient(ClientSettings(base_url=...)) as api:
            await api.login(email, password)
            summary = await api.budget_summary(couple_id)
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or ClientSettings()
        self._http = httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "OurLittleWorldClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._http.request(
                method,
                path,
                json=_jsonable(json) if json is not None else None,
                params=_compact(params or {}),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise UpstreamFailure("Network error") from exc

        _raise_for_status(response)
        return response.json()

    # === Auth & onboarding ===

    async def register(self, email: str, password: str, full_name: Optional[str] = None) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/v1/auth/register", json={"email": email, "password": password, "fullName": full_name}
        )

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/auth/login", json={"email": email, "password": password})

    async def logout(self) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/auth/logout")

    async def me(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/v1/me")

    async def create_world(self, world_name: str, **fields: Any) -> Dict[str, Any]:
        """fields: startDate, couplePhotoUrl, partnerNickname, theme"""
        return await self._request("POST", "/api/v1/worlds", json={"worldName": world_name, **fields})

    async def join_world(self, invite_code: str, partner_nickname: Optional[str] = None) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/v1/worlds/join", json={"inviteCode": invite_code, "partnerNickname": partner_nickname}
        )

    # === Transactions ===

    async def list_transactions(
        self,
        couple_id: str,
        month: Optional[str] = None,
        category: Optional[str] = None,
        payer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._request(
            "GET",
            "/api/v1/transactions",
            params={"coupleId": couple_id, "month": month, "category": category, "payer": payer},
        )

    async def create_transaction(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/transactions", json=payload)

    async def update_transaction(self, transaction_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/v1/transactions/{transaction_id}", json=changes)

    async def delete_transaction(self, transaction_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/v1/transactions/{transaction_id}")

    # === Budget ===

    async def budget_summary(self, couple_id: str, month: Optional[str] = None) -> Dict[str, Any]:
        return await self._request("GET", "/api/v1/budget/summary", params={"coupleId": couple_id, "month": month})

    async def update_budget(
        self,
        couple_id: str,
        monthly_total: Any,
        his_budget: Any,
        hers_budget: Any,
        shared_budget: Any,
        month: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            "/api/v1/budget/goals",
            json=_compact({
                "coupleId": couple_id,
                "monthlyTotal": monthly_total,
                "hisBudget": his_budget,
                "hersBudget": hers_budget,
                "sharedBudget": shared_budget,
                "month": month,
            }),
        )

    # === Savings goals ===

    async def list_goals(self, couple_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/v1/savings-goals", params={"coupleId": couple_id})

    async def create_goal(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/savings-goals", json=payload)

    async def update_goal(self, goal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/v1/savings-goals/{goal_id}", json=changes)

    async def delete_goal(self, goal_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/v1/savings-goals/{goal_id}")

    # === Feed ===

    async def list_posts(self, couple_id: str, page: int = 0, page_size: Optional[int] = None) -> Dict[str, Any]:
        return await self._request(
            "GET", "/api/v1/posts", params={"coupleId": couple_id, "page": page, "pageSize": page_size}
        )

    async def get_post(self, post_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/v1/posts/{post_id}")

    async def create_post(
        self, content: str, image_urls: Optional[List[str]] = None, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/v1/posts", json=_compact({"content": content, "imageUrls": image_urls, "metadata": metadata})
        )

    async def toggle_like(self, post_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/v1/posts/{post_id}/like")

    async def add_comment(self, post_id: str, content: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/v1/posts/{post_id}/comments", json={"content": content})

    async def add_reply(self, post_id: str, comment_id: str, content: str) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/api/v1/posts/{post_id}/comments/{comment_id}/replies", json={"content": content}
        )

    async def delete_post(self, post_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/v1/posts/{post_id}")

    # === Moods ===

    async def today_moods(self, couple_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/v1/moods/today", params={"coupleId": couple_id})

    async def submit_mood(
        self, mood_emoji: str, note: Optional[str] = None, message: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/v1/moods/today", json={"moodEmoji": mood_emoji, "note": note, "message": message}
        )

    async def update_mood_message(self, message: str) -> Dict[str, Any]:
        return await self._request("PUT", "/api/v1/moods/today/message", json={"message": message})

    # === Change feed ===

    async def changes(self, couple_id: str, after: int = 0, limit: Optional[int] = None) -> Dict[str, Any]:
        return await self._request(
            "GET", "/api/v1/changes", params={"coupleId": couple_id, "after": after, "limit": limit}
        )

    async def cursor(self, couple_id: str) -> int:
        data = await self._request("GET", "/api/v1/changes/cursor", params={"coupleId": couple_id})
        return data["cursor"]
