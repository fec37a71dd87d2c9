"""
ZipMetro Backend — Document Store Connection
==============================================

What:  Owns the Motor client for the document store: lazy connect, retry
       with backoff, circuit breaker, shutdown.
Why:   MongoDB (especially hosted Atlas) can be slow or briefly unreachable
       at startup. The process must keep running and serve errors rather
       than crash, and must not hammer an unreachable cluster.
How:   One explicitly owned handle (no module globals). The first caller
       connects, everyone else waits on the same lock; a failed round is
       reported to the callers that were waiting on it instead of starting
       another round each.
Who:   zipmetro.store.document.DocumentStore
When:  First store operation (or lifespan startup); closed at shutdown.

Reconnect Policy:
    Per round: up to RETRY_MAX_ATTEMPTS tries, each a fresh client + ping.
    Between tries: wait = min(RETRY_MAX_WAIT, RETRY_MIN_WAIT * 2^n) + jitter.
    Only network-level failures (ConnectionFailure) are retried; bad URIs and
    authentication failures fail the round immediately.
    After CB_FAILURE_THRESHOLD failed rounds the circuit opens and callers get
    CircuitBreakerOpenError without touching the network for
    CB_RECOVERY_TIMEOUT seconds.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from zipmetro.exceptions import CircuitBreakerOpenError, StoreUnavailableError

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern around connection rounds.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all attempts)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE connection round through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters. Safe because every caller runs on the one event loop
        and state changes happen between awaits.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 3, recovery_timeout: int = 30):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a connection round is allowed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (store reachable again)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test connection failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failed connection rounds",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Connection Handle
# ══════════════════════════════════════════════════════════════════════════

class DocumentConnection:
    """
    Lazily connected, explicitly closed Motor client handle.

    Args:
        uri:               MongoDB connection string
        database_name:     Used when the URI names no default database
        max_attempts:      Tries per connection round
        min_wait/max_wait: Backoff bounds in seconds
        jitter:            Extra random wait in seconds, added per try
        failure_threshold: Failed rounds before the circuit opens
        recovery_timeout:  Seconds the circuit stays open
        client_options:    Keyword options for the Motor client
        client_factory:    Callable building the client (tests pass a mock)
    """

    def __init__(
        self,
        uri: str,
        database_name: str = "zipmetro",
        *,
        max_attempts: int = 3,
        min_wait: float = 1,
        max_wait: float = 10,
        jitter: float = 1,
        failure_threshold: int = 3,
        recovery_timeout: int = 30,
        client_options: Optional[Dict[str, Any]] = None,
        client_factory: Callable[..., Any] = AsyncIOMotorClient,
    ):
        self.uri = uri
        self.database_name = database_name
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.jitter = jitter
        self.client_options = client_options or {}
        self.client_factory = client_factory
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )

        self._client: Optional[Any] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()
        self._completed_rounds = 0
        self._last_error: Optional[PyMongoError] = None

    async def database(self) -> AsyncIOMotorDatabase:
        """
        The connected database, connecting first if needed.

        Raises:
            CircuitBreakerOpenError: connection rounds are suspended
            StoreUnavailableError:   this round (or the one just awaited) failed
        """
        if self._db is not None:
            return self._db

        seen = self._completed_rounds
        async with self._lock:
            if self._db is not None:
                return self._db
            if self._completed_rounds != seen and self._last_error is not None:
                # A round finished while we waited; share its outcome
                raise self._unavailable(self._last_error)

            self.circuit_breaker.can_execute()
            try:
                client, db = await self._connect_with_retry()
            except PyMongoError as e:
                self._completed_rounds += 1
                self._last_error = e
                self.circuit_breaker.record_failure()
                logger.error(
                    "MongoDB connection failed after %d attempts: %s",
                    self.max_attempts,
                    str(e),
                )
                raise self._unavailable(e) from e

            self._completed_rounds += 1
            self.circuit_breaker.record_success()
            self._last_error = None
            self._client, self._db = client, db
            logger.info("Connected to MongoDB database '%s'", db.name)
            return db

    async def _connect_with_retry(self) -> Tuple[Any, AsyncIOMotorDatabase]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ConnectionFailure),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait,
                max=self.max_wait,
                jitter=self.jitter,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                client, db = await self._open(attempt.retry_state.attempt_number)
        return client, db

    async def _open(self, attempt_number: int) -> Tuple[Any, AsyncIOMotorDatabase]:
        logger.info(
            "Attempting MongoDB connection (attempt %d/%d)",
            attempt_number,
            self.max_attempts,
        )
        client = self.client_factory(self.uri, **self.client_options)
        try:
            await client.admin.command("ping")
            name = client.get_default_database(default=self.database_name).name
            # Indexing the client yields its own (async) database handle
            db = client[name]
        except PyMongoError:
            client.close()
            raise
        return client, db

    def _unavailable(self, error: PyMongoError) -> StoreUnavailableError:
        return StoreUnavailableError(
            context={
                "error_type": type(error).__name__,
                "error": str(error),
                "attempts": self.max_attempts,
            },
        )

    async def close(self) -> None:
        """Closes the client. The next database() call reconnects."""
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._db = None
