"""
Async HTTP client for the wordbook sync backend.

Wraps every endpoint with typed inputs/outputs (client models, not raw JSON)
and maps failures onto the ApiError hierarchy. No internal retry.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import aiohttp

from vocab_client.config import ClientSettings, client_settings
from vocab_client.models import ProgressState, UserProfile, VisibilityEntry, Wordbook, WordEntry

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base for API failures; ``message`` is user-facing."""

    default_message = "未知错误"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, details: Any = None):
        self.message = message or self.default_message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class UnauthorizedError(ApiError):
    default_message = "未授权，请重新登录"


class NotFoundError(ApiError):
    default_message = "资源不存在"


class ClientRequestError(ApiError):
    default_message = "客户端错误"


class ServerError(ApiError):
    default_message = "服务器错误"


class NetworkError(ApiError):
    default_message = "网络错误"


class DecodingError(ApiError):
    default_message = "数据解析失败"


def error_for_status(status: int, body: Any) -> ApiError:
    """Map a non-2xx response onto the matching ApiError subclass."""
    message = body.get("error") if isinstance(body, dict) else None
    details = body.get("details") if isinstance(body, dict) else None
    if status == 401:
        return UnauthorizedError(status_code=status, details=details)
    if status == 404:
        return NotFoundError(message, status_code=status, details=details)
    if 400 <= status < 500:
        return ClientRequestError(message or f"客户端错误 ({status})", status_code=status, details=details)
    if 500 <= status < 600:
        return ServerError(message or f"服务器错误 ({status})", status_code=status, details=details)
    return ApiError(f"未知错误 ({status})", status_code=status, details=details)


def entry_payload(entry: WordEntry) -> Dict[str, Any]:
    return {"id": str(entry.id), "word": entry.word, "meaning": entry.meaning, "ordinal": entry.ordinal}


def wordbook_payload(book: Wordbook, include_id: bool) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": book.title,
        "subtitle": book.subtitle,
        "targetPasses": book.target_passes,
        # List position is the display order
        "words": [{**entry_payload(entry), "ordinal": i} for i, entry in enumerate(book.words)],
    }
    if include_id:
        payload["id"] = str(book.id)
    return payload


class ApiClient:
    """
    Backend API client for one signed-in user.

    The aiohttp session is created lazily and reused (TCP connection pooling);
    call :meth:`close` when the user signs out.

    Usage:
        >>> client = ApiClient(access_token=lambda: session.access_token)
        >>> books = await client.get_wordbooks(include_templates=False)
        >>> await client.close()
    """

    def __init__(
        self,
        access_token: Callable[[], Optional[str]],
        base_url: Optional[str] = None,
        settings: Optional[ClientSettings] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.settings = settings or client_settings
        self.base_url = (base_url or self.settings.VOCAB_API_BASE_URL).rstrip("/")
        self._access_token = access_token
        self._session = session

    async def get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    sock_connect=self.settings.VOCAB_CONNECT_TIMEOUT,
                    total=self.settings.VOCAB_TOTAL_TIMEOUT
                )
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None
    ) -> Any:
        """
        Perform one request and decode the JSON body.

        Raises:
            UnauthorizedError, NotFoundError, ClientRequestError, ServerError:
                Non-2xx responses
            NetworkError: Transport failures and timeouts
            DecodingError: 2xx response whose body is not JSON
        """
        session = await self.get_session()
        url = f"{self.base_url}{path}"
        try:
            async with session.request(method, url, params=params, json=json, headers=self._headers()) as response:
                if 200 <= response.status < 300:
                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        logger.error(f"❌ Undecodable response from {method} {path}: {e}")
                        raise DecodingError(details=str(e))

                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                raise error_for_status(response.status, body)
        except aiohttp.ClientError as e:
            raise NetworkError(f"网络错误: {e}", details=str(e))
        except asyncio.TimeoutError as e:
            raise NetworkError("网络错误: 请求超时", details=str(e))

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self) -> UserProfile:
        data = await self._request("GET", "/api/profile")
        return UserProfile.from_dict(self._field(data, "profile"))

    async def update_profile(
        self,
        display_name: Optional[str] = None,
        avatar_emoji: Optional[str] = None
    ) -> UserProfile:
        payload: Dict[str, Any] = {}
        if display_name is not None:
            payload["displayName"] = display_name
        if avatar_emoji is not None:
            payload["avatarEmoji"] = avatar_emoji
        data = await self._request("PATCH", "/api/profile", json=payload)
        return UserProfile.from_dict(self._field(data, "profile"))

    # ------------------------------------------------------------------
    # Wordbooks
    # ------------------------------------------------------------------

    async def get_wordbooks(self, include_templates: bool = True, limit: Optional[int] = None) -> List[Wordbook]:
        params = {"includeTemplates": "true" if include_templates else "false"}
        if limit is not None:
            params["limit"] = str(limit)
        data = await self._request("GET", "/api/wordbooks", params=params)
        return [self._decode(Wordbook.from_dict, item) for item in self._field(data, "wordbooks")]

    async def get_wordbook(self, book_id: UUID) -> Wordbook:
        data = await self._request("GET", f"/api/wordbooks/{book_id}")
        return self._decode(Wordbook.from_dict, self._field(data, "wordbook"))

    async def create_wordbook(self, book: Wordbook) -> Wordbook:
        """Create remotely, keeping the local id for the book and its entries."""
        data = await self._request("POST", "/api/wordbooks", json=wordbook_payload(book, include_id=True))
        return self._decode(Wordbook.from_dict, self._field(data, "wordbook"))

    async def update_wordbook(self, book: Wordbook) -> Wordbook:
        """PATCH title, subtitle, target and the full word list."""
        data = await self._request("PATCH", f"/api/wordbooks/{book.id}", json=wordbook_payload(book, include_id=False))
        return self._decode(Wordbook.from_dict, self._field(data, "wordbook"))

    async def delete_wordbook(self, book_id: UUID) -> None:
        await self._request("DELETE", f"/api/wordbooks/{book_id}")

    async def import_entries(self, book_id: UUID, entries: Iterable[Tuple[str, str]]) -> Tuple[int, List[str]]:
        """
        Bulk-append (word, meaning) pairs.

        Returns:
            (added count, duplicate words rejected by the server)
        """
        payload = {"entries": [{"word": word, "meaning": meaning} for word, meaning in entries]}
        data = await self._request("POST", f"/api/wordbooks/{book_id}/entries", json=payload)
        return int(self._field(data, "addedCount")), list(self._field(data, "duplicateWords"))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def get_section_progress(self, book_id: Optional[UUID] = None) -> Dict[UUID, ProgressState]:
        params = {"wordbookId": str(book_id)} if book_id else None
        data = await self._request("GET", "/api/progress/sections", params=params)
        return dict(
            self._decode(lambda item: (UUID(item["wordbookId"]), ProgressState.from_dict(item)), item)
            for item in self._field(data, "records")
        )

    async def upsert_section_progress(self, records: Dict[UUID, ProgressState]) -> None:
        payload = {
            "records": [
                {"wordbookId": str(book_id), **progress.to_dict()}
                for book_id, progress in records.items()
            ]
        }
        await self._request("POST", "/api/progress/sections", json=payload)

    async def get_daily_progress(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict[str, int]:
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        data = await self._request("GET", "/api/progress/daily", params=params or None)
        return dict(
            self._decode(lambda item: (item["date"], int(item["wordsLearned"])), item)
            for item in self._field(data, "records")
        )

    async def upsert_daily_progress(self, records: Dict[str, int]) -> None:
        payload = {"records": [{"date": day, "wordsLearned": count} for day, count in records.items()]}
        await self._request("POST", "/api/progress/daily", json=payload)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    async def get_visibility(self, book_id: Optional[UUID] = None) -> Dict[UUID, VisibilityEntry]:
        params = {"wordbookId": str(book_id)} if book_id else None
        data = await self._request("GET", "/api/visibility", params=params)
        return dict(
            self._decode(lambda item: (UUID(item["wordEntryId"]), VisibilityEntry.from_dict(item)), item)
            for item in self._field(data, "records")
        )

    async def upsert_visibility(self, records: Dict[UUID, VisibilityEntry]) -> None:
        payload = {
            "records": [
                {"wordEntryId": str(entry_id), **entry.to_dict()}
                for entry_id, entry in records.items()
            ]
        }
        await self._request("POST", "/api/visibility", json=payload)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _field(data: Any, name: str) -> Any:
        if not isinstance(data, dict) or name not in data:
            raise DecodingError(details=f"missing field: {name}")
        return data[name]

    @staticmethod
    def _decode(decoder: Callable[[Any], Any], item: Any) -> Any:
        try:
            return decoder(item)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodingError(details=str(e))
