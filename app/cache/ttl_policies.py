"""
TTL classes and cache key naming for LiveTest API endpoints.
"""
from enum import IntEnum
from typing import Optional


class TTLClass(IntEnum):
    """How long each family of responses stays fresh (milliseconds)."""
    SHORT = 2 * 60 * 1000         # 2 minutes - changes often (own tests, share links)
    MEDIUM = 5 * 60 * 1000        # 5 minutes - dashboards, leaderboards, history
    LONG = 15 * 60 * 1000         # 15 minutes - test details change rarely
    VERY_LONG = 60 * 60 * 1000    # 1 hour - submitted results never change


class CacheKeys:
    """
    Cache key names.

    Related keys share a prefix so a whole family can be dropped with
    CacheManager.invalidate_pattern (e.g. every "leaderboard" key).
    """
    USER_DASHBOARD = "user_dashboard"
    USER_TESTS = "user_tests"
    USER_EXAM_HISTORY = "user_exam_history"
    LEADERBOARD_GLOBAL = "leaderboard_global"

    @staticmethod
    def user_exam_history_page(page: int, limit: int) -> str:
        return f"{CacheKeys.USER_EXAM_HISTORY}_{page}_{limit}"

    @staticmethod
    def leaderboard_global(limit: int) -> str:
        return f"{CacheKeys.LEADERBOARD_GLOBAL}_{limit}"

    @staticmethod
    def test_details(test_id: str) -> str:
        return f"test_details_{test_id}"

    @staticmethod
    def leaderboard_test(test_id: str, limit: Optional[int] = None) -> str:
        key = f"leaderboard_test_{test_id}"
        return key if limit is None else f"{key}_{limit}"

    @staticmethod
    def test_results(submission_id: str) -> str:
        return f"test_results_{submission_id}"

    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"user_profile_{user_id}"

    @staticmethod
    def shareable_link(test_id: str) -> str:
        return f"shareable_link_{test_id}"
