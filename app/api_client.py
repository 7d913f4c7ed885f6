"""
LiveTest API client with read-through caching.

Read endpoints go through CacheManager.get_or_fetch with a TTL class per
endpoint; write endpoints are never cached and drop the cache entries
they make obsolete.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from app.cache import CacheKeys, CacheManager, TTLClass, get_cache_manager
from config.settings import settings

logger = logging.getLogger("api_client")


class ApiError(Exception):
    """An API request failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiService:
    """
    Wraps the LiveTest REST API with caching.

    Usage:
        service = ApiService(get_cache_manager(), token=access_token)
        dashboard = await service.get_user_dashboard()
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.cache = cache if cache is not None else get_cache_manager()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.session = session or requests.Session()
        self.token = token
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds

    def _get_headers(self) -> Dict[str, str]:
        """Get API authentication headers."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, **kwargs) -> Any:
        """Blocking request; raises ApiError on any failure."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ApiError(f"{method} {path} failed with status {status}", status) from e
        except requests.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned a non-JSON body: {e}", response.status_code) from e

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._send, method, path, **kwargs)

    async def _cached_get(self, key: str, path: str, ttl: TTLClass, params: Optional[dict] = None) -> Any:
        async def fetch():
            return await self._request("GET", path, params=params)

        return await self.cache.get_or_fetch(key, fetch, int(ttl))

    # =========================================================================
    # Cached reads
    # =========================================================================

    async def get_user_dashboard(self) -> Any:
        return await self._cached_get(
            CacheKeys.USER_DASHBOARD, "/users/dashboard", TTLClass.MEDIUM
        )

    async def get_user_tests(self) -> Any:
        # Own tests change frequently while authoring
        return await self._cached_get(CacheKeys.USER_TESTS, "/tests", TTLClass.SHORT)

    async def get_user_exam_history(self, page: int = 1, limit: int = 20) -> Any:
        return await self._cached_get(
            CacheKeys.user_exam_history_page(page, limit),
            "/users/exam-history",
            TTLClass.MEDIUM,
            params={"page": page, "limit": limit},
        )

    async def get_test_details(self, test_id: str) -> Any:
        return await self._cached_get(
            CacheKeys.test_details(test_id), f"/tests/{test_id}", TTLClass.LONG
        )

    async def get_global_leaderboard(self, limit: int = 50) -> Any:
        return await self._cached_get(
            CacheKeys.leaderboard_global(limit),
            "/leaderboard/global",
            TTLClass.MEDIUM,
            params={"limit": limit},
        )

    async def get_test_leaderboard(self, test_id: str, limit: int = 50) -> Any:
        return await self._cached_get(
            CacheKeys.leaderboard_test(test_id, limit),
            f"/leaderboard/test/{test_id}",
            TTLClass.MEDIUM,
            params={"limit": limit},
        )

    async def get_test_results(self, submission_id: str) -> Any:
        # Results of a submitted test never change
        return await self._cached_get(
            CacheKeys.test_results(submission_id),
            f"/submissions/{submission_id}/results",
            TTLClass.VERY_LONG,
        )

    async def get_shareable_link(self, test_id: str) -> Any:
        return await self._cached_get(
            CacheKeys.shareable_link(test_id), f"/tests/{test_id}/share", TTLClass.SHORT
        )

    # =========================================================================
    # Uncached writes
    # =========================================================================

    async def join_test(self, access_code: str) -> Any:
        return await self._request("POST", "/tests/join", json={"accessCode": access_code})

    async def start_test(self, test_id: str) -> Any:
        data = await self._request("POST", "/submissions/start", json={"testId": test_id})
        self.invalidate_user_caches()
        return data

    async def save_answer(self, submission_id: str, question_id: str, answer: Dict[str, Any]) -> Any:
        payload = {"submissionId": submission_id, "questionId": question_id, **answer}
        return await self._request("POST", "/submissions/answer", json=payload)

    async def submit_test(self, submission_id: str) -> Any:
        data = await self._request(
            "POST", "/submissions/submit", json={"submissionId": submission_id}
        )
        self.invalidate_user_caches()
        return data

    async def create_test(self, test_data: Dict[str, Any]) -> Any:
        data = await self._request("POST", "/tests/generate", json=test_data)
        self.cache.delete(CacheKeys.USER_TESTS)
        self.cache.delete(CacheKeys.USER_DASHBOARD)
        return data

    async def publish_test(self, test_id: str) -> Any:
        data = await self._request("PATCH", f"/tests/{test_id}/publish")
        self.cache.delete(CacheKeys.USER_TESTS)
        self.cache.delete(CacheKeys.test_details(test_id))
        return data

    # =========================================================================
    # Cache maintenance
    # =========================================================================

    def invalidate_user_caches(self) -> None:
        """Drop everything derived from the current user's activity."""
        self.cache.delete(CacheKeys.USER_DASHBOARD)
        self.cache.delete(CacheKeys.USER_TESTS)
        self.cache.invalidate_pattern(CacheKeys.USER_EXAM_HISTORY)
        self.cache.invalidate_pattern("leaderboard")

    def clear_all_caches(self) -> int:
        """Invalidate all caches (use on logout)."""
        return self.cache.clear()

    async def preload_user_data(self, role: Optional[str] = None) -> None:
        """
        Warm the cache with the data the user's landing page needs.

        Failures are logged, never raised: preloading is an optimisation.
        """
        try:
            await self.get_user_dashboard()
            if role == "teacher":
                await self.get_user_tests()
            elif role == "student":
                await self.get_user_exam_history(1, 5)
        except ApiError as e:
            logger.warning(f"Failed to preload user data: {e}")

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics for debugging."""
        return self.cache.get_stats()
