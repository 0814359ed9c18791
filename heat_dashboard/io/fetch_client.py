"""
HTTP JSON client with bounded retry on rate limiting.

The blocking request runs in a worker thread via ``asyncio.to_thread`` so the
event loop keeps serving other fetches while one waits on the network.
A ``requests.Session`` is not guaranteed to be thread-safe, so unless one is
injected the client opens one session per worker thread.
"""

import asyncio
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import requests

from ..exceptions import FetchError, RateLimited
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    When and how long to wait before retrying a request.

    The default waits base_delay * (attempt + 1) seconds after a 429
    (3 s, 6 s, 9 s) and gives up after four attempts. There is no jitter.
    """
    max_attempts: int = 4
    base_delay: float = 3.0
    retry_statuses: Tuple[int, ...] = (429,)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the failed attempt number ``attempt`` (0-based)."""
        return self.base_delay * (attempt + 1)

    def should_retry(self, status: int, attempt: int, max_attempts: Optional[int] = None) -> bool:
        limit = self.max_attempts if max_attempts is None else max_attempts
        return status in self.retry_statuses and attempt + 1 < limit


class FetchClient:
    """
    Fetch JSON documents from the upstream API.

    Args:
        session: Session shared by every request; the caller vouches for its
            thread safety. When omitted each worker thread gets its own.
        policy: RetryPolicy for rate-limited responses
        timeout: Per-request timeout in seconds
        sleep: Coroutine used for backoff waits (asyncio.sleep by default)
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 policy: Optional[RetryPolicy] = None,
                 timeout: float = 30.0,
                 sleep: Sleep = asyncio.sleep):
        self._shared = session
        self._local = threading.local()
        self._owned: List[requests.Session] = []
        self._lock = threading.Lock()
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.sleep = sleep

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                         max_retries: Optional[int] = None) -> Any:
        """
        GET a URL and decode its JSON body.

        Args:
            url: Endpoint URL
            params: Query parameters
            max_retries: Total attempts allowed (defaults to the policy's)

        Returns:
            Decoded JSON body

        Raises:
            RateLimited: If every attempt was answered with a retryable status
            FetchError: On any other non-success status, transport error or bad JSON
        """
        attempts = self.policy.max_attempts if max_retries is None else max_retries
        if attempts < 1:
            raise ValueError(f"max_retries must be at least 1, got {attempts}")

        attempt = 0
        while True:
            try:
                response = await asyncio.to_thread(self._get, url, params)
            except requests.RequestException as e:
                raise FetchError(None, url, str(e)) from e

            status = response.status_code
            if response.ok:
                try:
                    return response.json()
                except ValueError as e:
                    raise FetchError(None, url, "invalid JSON body") from e

            if self.policy.should_retry(status, attempt, attempts):
                wait = self.policy.delay(attempt)
                logger.warning("Rate limited (%s) on %s, retrying in %.1fs (attempt %d/%d)",
                               status, url, wait, attempt + 1, attempts)
                await self.sleep(wait)
                attempt += 1
                continue

            if status in self.policy.retry_statuses:
                raise RateLimited(status, url)
            raise FetchError(status, url)

    def session_for_thread(self) -> requests.Session:
        """Session for the calling thread: the injected one, or a per-thread session."""
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._owned.append(session)
        return session

    def _get(self, url: str, params: Optional[Dict[str, Any]]):
        return self.session_for_thread().get(url, params=params, timeout=self.timeout)

    def close(self):
        if self._shared is not None:
            self._shared.close()
        with self._lock:
            owned, self._owned = self._owned, []
        for session in owned:
            session.close()
