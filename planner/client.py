from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import requests

from .cache import PlanCache
from .plans import PlanParseError, default_plan, validate_plan


logger = logging.getLogger(__name__)


RATE_LIMIT_MESSAGE = "Too many plan requests right now. Please wait a moment and try again."


@dataclass
class PlanResult:
    plan: List[Dict[str, Any]]
    error: Optional[str] = None
    source: str = "generated"  # generated | cache | default
    rate_limited: bool = False


def _has_data(value: Optional[Mapping[str, Any]]) -> bool:
    return bool(value)


class PlanClient:
    """
    Client for the /generate-workout endpoint.

    fetch_plan() never raises: any failure yields the default plan together
    with a message suitable for showing next to it.
    """

    CACHE_KEY = "workoutPlan"

    def __init__(
        self,
        base_url: str,
        *,
        cache: Optional[PlanCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.session = session if session is not None else requests.Session()
        self.timeout = float(timeout)

    def _cached_plan(self) -> Optional[List[Dict[str, Any]]]:
        if self.cache is None:
            return None
        cached = self.cache.get(self.CACHE_KEY)
        if cached is None:
            return None
        try:
            return validate_plan(cached)
        except PlanParseError as exc:
            logger.warning("Discarding cached plan: %s", exc)
            self.cache.delete(self.CACHE_KEY)
            return None

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.delete(self.CACHE_KEY)

    def fetch_plan(
        self,
        health_stats: Optional[Mapping[str, Any]],
        goals: Optional[Mapping[str, Any]],
    ) -> PlanResult:
        cached = self._cached_plan()
        if cached is not None:
            logger.info("Using cached workout plan")
            return PlanResult(plan=cached, source="cache")

        if not (_has_data(health_stats) and _has_data(goals)):
            return PlanResult(plan=default_plan(), source="default")

        try:
            resp = self.session.post(
                f"{self.base_url}/generate-workout",
                json={"healthStats": dict(health_stats), "goals": dict(goals)},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Error fetching workout plan: %s", exc)
            return self._fallback(f"Failed to reach the plan service: {exc}")

        if resp.status_code == 429:
            message = self._error_message(resp) or RATE_LIMIT_MESSAGE
            logger.warning("Plan service rate limited: %s", message)
            return self._fallback(message, rate_limited=True)

        if not resp.ok:
            message = self._error_message(resp) or "Failed to fetch workout plan"
            logger.error("Plan service returned %d: %s", resp.status_code, message)
            return self._fallback(message)

        try:
            plan = validate_plan(resp.json())
        except (PlanParseError, ValueError) as exc:
            logger.error("Unexpected plan response: %s", exc)
            return self._fallback(f"Workout plan response was not in the expected format: {exc}")

        if self.cache is not None:
            try:
                self.cache.set(self.CACHE_KEY, plan)
            except OSError as exc:
                logger.warning("Could not cache workout plan: %s", exc)
        return PlanResult(plan=plan, source="generated")

    @staticmethod
    def _error_message(resp: requests.Response) -> Optional[str]:
        try:
            body = resp.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        message = body.get("message")
        raw = body.get("rawResponse")
        if message and raw:
            return f"{message} Raw: {str(raw)[:100]}..."
        return message

    @staticmethod
    def _fallback(message: str, *, rate_limited: bool = False) -> PlanResult:
        return PlanResult(plan=default_plan(), error=message, source="default", rate_limited=rate_limited)
