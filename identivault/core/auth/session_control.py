"""
Session Control
===============

Session management over a pluggable provider, with a supervised
background sweep that removes expired sessions.

Features:
- Cryptographically random session ids
- CRUD delegated to a SessionProvider
- Auto-GC: one background thread per manager, started and stopped
  through a lock-guarded state transition
- Optional deadline on each GC call, so a hung provider cannot stall
  the sweep forever
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
import weakref
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from identivault.db.storage import NotFoundError, SessionProvider, StorageError
from identivault.security.constants import (
    AUTO_GC_INTERVAL_SECONDS,
    SESSION_TIMEOUT_SECONDS,
    SESSION_TOKEN_BYTES,
)

if TYPE_CHECKING:
    from identivault.core.config import SessionConfig


_log = logging.getLogger("identivault.auth.sessions")


def _epoch_now() -> int:
    return int(time.time())


@dataclass(frozen=True, slots=True)
class Session:
    """
    Login session.

    Timestamps are epoch seconds. A session whose expires_on has passed is
    dead even while the provider still holds it; the sweep removes it
    eventually.
    """
    id: str
    owner_id: str
    created_at: int
    expires_on: int

    def __post_init__(self) -> None:
        if self.expires_on <= self.created_at:
            raise ValueError("expires_on must be after created_at")

    def __repr__(self) -> str:
        """Representation without the session token."""
        return (
            f"Session(owner_id={self.owner_id!r}, created_at={self.created_at}, "
            f"expires_on={self.expires_on})"
        )

    def is_expired(self, now: Optional[int] = None) -> bool:
        """Check if the session has expired."""
        if now is None:
            now = _epoch_now()
        return self.expires_on < now


def new_session(
    owner_id: str,
    ttl_seconds: int = SESSION_TIMEOUT_SECONDS,
    now: Optional[int] = None,
) -> Session:
    """
    Build a session with a fresh random id.

    Args:
        owner_id: Account id the session belongs to
        ttl_seconds: Lifetime in seconds
        now: Creation time (current time when omitted)
    """
    if ttl_seconds <= 0:
        raise ValueError("ttl_seconds must be positive")
    if now is None:
        now = _epoch_now()
    return Session(
        id=secrets.token_urlsafe(SESSION_TOKEN_BYTES),
        owner_id=owner_id,
        created_at=now,
        expires_on=now + ttl_seconds,
    )


class SessionError(Exception):
    """Base exception for session errors."""
    pass


class SessionStoreError(SessionError):
    """Raised when the session provider fails; the cause is chained."""
    pass


class SessionExpiredError(SessionError):
    """Raised when a session exists but has expired."""
    pass


class AutoGCAlreadyRunningError(SessionError):
    """Raised when enabling Auto-GC while it is already running."""
    pass


class AutoGCNotRunningError(SessionError):
    """Raised when disabling Auto-GC while it is not running."""
    pass


class AutoGCTask:
    """
    Background expiry sweep.

    Runs ``gc(); wait(interval)`` on a daemon thread until stopped. The
    task only holds a weak reference to the GC callable's owner, so it
    ends on its own once the session manager is garbage collected.

    GC failures never stop the loop: they are counted, logged and handed
    to ``on_error``. With a timeout, each call runs on a single worker
    thread and the loop stops waiting after the deadline; while a
    timed-out call is still running, later cycles are skipped.
    """

    __slots__ = (
        "_target", "_interval", "_timeout", "_on_error", "_stop",
        "_thread", "_executor", "_pending", "cycles", "failures",
        "timeouts", "skipped",
    )

    def __init__(
        self,
        target: Callable[[], Optional[Callable[[], None]]],
        interval: float,
        timeout: Optional[float] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        """
        Initialize the task (not started).

        Args:
            target: Returns the GC callable, or None once its owner is gone
            interval: Seconds to wait between GC calls
            timeout: Deadline for one GC call in seconds, None for no deadline
            on_error: Called with each GC failure
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive or None")

        self._target = target
        self._interval = interval
        self._timeout = timeout
        self._on_error = on_error
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self.cycles = 0
        self.failures = 0
        self.timeouts = 0
        self.skipped = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        """Start the background thread. A task can only be started once."""
        if self._thread is not None:
            raise RuntimeError("AutoGCTask already started")

        if self._timeout is not None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="identivault-gc-call"
            )
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="identivault-auto-gc",
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the loop to exit; it notices within one interval."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop thread to exit.

        Returns:
            True if the thread has exited
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        _log.debug("Auto-GC started (interval=%ss)", self._interval)
        try:
            while not self._stop.is_set():
                gc = self._target()
                if gc is None:
                    _log.debug("Session manager collected, stopping Auto-GC")
                    break
                self._run_once(gc)
                del gc
                self._stop.wait(self._interval)
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
            _log.debug("Auto-GC stopped")

    def _run_once(self, gc: Callable[[], None]) -> None:
        if self._executor is None:
            self._guarded(gc)
            return

        if self._pending is not None and not self._pending.done():
            self.skipped += 1
            _log.warning("Previous session GC still running, skipping this cycle")
            return

        self._pending = self._executor.submit(gc)
        try:
            self._pending.result(timeout=self._timeout)
        except FutureTimeoutError:
            self.timeouts += 1
            _log.warning("Session GC exceeded %ss deadline", self._timeout)
        except Exception as exc:
            self._record_failure(exc)
        else:
            self.cycles += 1

    def _guarded(self, gc: Callable[[], None]) -> None:
        try:
            gc()
        except Exception as exc:
            self._record_failure(exc)
        else:
            self.cycles += 1

    def _record_failure(self, exc: Exception) -> None:
        self.failures += 1
        _log.warning("Session GC failed: %s", exc)
        if self._on_error is not None:
            try:
                self._on_error(exc)
            except Exception:
                _log.exception("Auto-GC error callback raised")


class SessionManager:
    """
    Session management over a SessionProvider.

    The provider owns storage; the manager owns the expiry policy and
    never touches storage except through the provider.

    Usage:
        manager = SessionManager(InMemorySessionProvider())

        session = new_session(account.id, ttl_seconds=900)
        manager.add(session)
        manager.get(session.id)

        # Sweep expired sessions every minute
        manager.enable_auto_gc(60)
        ...
        manager.disable_auto_gc()

    Auto-GC states are Stopped and Running. enable_auto_gc and
    disable_auto_gc switch between them under one lock; calling either
    in the wrong state raises.
    """

    __slots__ = (
        "_provider", "_gc_timeout", "_on_gc_error", "_gc_interval", "_session_ttl",
        "_state_lock", "_auto_gc", "_finalizer", "__weakref__",
    )

    def __init__(
        self,
        provider: SessionProvider,
        gc_timeout: Optional[float] = None,
        on_gc_error: Optional[Callable[[BaseException], None]] = None,
        gc_interval: float = AUTO_GC_INTERVAL_SECONDS,
        session_ttl: int = SESSION_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the session manager.

        Args:
            provider: Session storage backend
            gc_timeout: Deadline in seconds for each background GC call
            on_gc_error: Called with every failure of a background GC call
            gc_interval: Auto-GC interval used when enable_auto_gc gets none
            session_ttl: Lifetime in seconds of sessions from start_session
        """
        self._provider = provider
        self._gc_timeout = gc_timeout
        self._on_gc_error = on_gc_error
        self._gc_interval = gc_interval
        self._session_ttl = session_ttl
        self._state_lock = threading.Lock()
        self._auto_gc: Optional[AutoGCTask] = None
        self._finalizer: Optional[weakref.finalize] = None

    @classmethod
    def from_config(
        cls,
        provider: SessionProvider,
        config: SessionConfig,
        on_gc_error: Optional[Callable[[BaseException], None]] = None,
    ) -> SessionManager:
        return cls(
            provider,
            gc_timeout=config.gc_timeout_seconds,
            on_gc_error=on_gc_error,
            gc_interval=config.gc_interval_seconds,
            session_ttl=config.default_ttl_seconds,
        )

    def _call(self, action: str, func: Callable, *args):
        try:
            return func(*args)
        except NotFoundError:
            raise
        except StorageError as exc:
            raise SessionStoreError(f"Error {action}") from exc

    def add(self, session: Session) -> None:
        """Store a new session."""
        self._call("adding the session", self._provider.add, session)

    def start_session(self, owner_id: str, now: Optional[int] = None) -> Session:
        """Create and store a session for an account with the configured lifetime."""
        session = new_session(owner_id, self._session_ttl, now)
        self.add(session)
        return session

    def get(self, session_id: str) -> Session:
        """
        Get a session by id, expired or not.

        Raises:
            NotFoundError: If the provider does not hold the session
        """
        return self._call("getting the session", self._provider.get, session_id)

    def get_active(self, session_id: str, now: Optional[int] = None) -> Session:
        """
        Get a session that has not expired.

        Raises:
            NotFoundError: If the provider does not hold the session
            SessionExpiredError: If the session has expired
        """
        session = self.get(session_id)
        if session.is_expired(now):
            raise SessionExpiredError("Session has expired")
        return session

    def get_by_owner_id(self, owner_id: str) -> Dict[str, Session]:
        """Get all sessions of an account, keyed by session id."""
        return self._call("getting the sessions", self._provider.get_by_owner_id, owner_id)

    def update(self, session: Session) -> None:
        """Replace a stored session, e.g. to extend expires_on."""
        self._call("updating the session", self._provider.update, session)

    def delete(self, session_id: str) -> None:
        """Revoke a session."""
        self._call("deleting the session", self._provider.delete, session_id)

    def delete_by_owner_id(self, owner_id: str) -> int:
        """
        Revoke every session of an account (log out everywhere).

        Returns:
            Number of sessions deleted by this call
        """
        deleted = 0
        for session_id in self.get_by_owner_id(owner_id):
            try:
                self.delete(session_id)
            except NotFoundError:
                continue
            deleted += 1
        return deleted

    def gc(self) -> None:
        """Remove every expired session from the provider."""
        self._call("collecting expired sessions", self._provider.gc)

    # ------------------------------------------------------------------
    # Auto-GC
    # ------------------------------------------------------------------

    @property
    def auto_gc_running(self) -> bool:
        with self._state_lock:
            return self._auto_gc is not None

    def enable_auto_gc(self, interval: Optional[float] = None) -> AutoGCTask:
        """
        Start the background sweep: gc(), then wait `interval` seconds, repeat.

        The configured gc_interval is used when `interval` is None.

        Returns:
            The running task

        Raises:
            AutoGCAlreadyRunningError: If the sweep is already running
            ValueError: If interval is not positive
        """
        with self._state_lock:
            if self._auto_gc is not None:
                raise AutoGCAlreadyRunningError("The Auto-GC job is already running")

            if interval is None:
                interval = self._gc_interval

            task = AutoGCTask(
                weakref.WeakMethod(self.gc),
                interval,
                timeout=self._gc_timeout,
                on_error=self._on_gc_error,
            )
            task.start()
            self._auto_gc = task
            self._finalizer = weakref.finalize(self, task.stop)

        _log.info("Auto-GC enabled (interval=%ss)", interval)
        return task

    def disable_auto_gc(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """
        Stop the background sweep.

        The loop exits after its current GC call or wait, so it may still
        be running when this returns unless `wait` is set.

        Args:
            wait: Join the loop thread before returning
            timeout: Maximum seconds to wait when joining

        Raises:
            AutoGCNotRunningError: If the sweep is not running
        """
        with self._state_lock:
            task = self._auto_gc
            if task is None:
                raise AutoGCNotRunningError("The Auto-GC job was not running")
            self._auto_gc = None
            self._finalizer.detach()
            self._finalizer = None
            task.stop()

        _log.info("Auto-GC disabled")
        if wait:
            task.join(timeout)

    def close(self) -> None:
        """Stop the background sweep if it is running."""
        try:
            self.disable_auto_gc()
        except AutoGCNotRunningError:
            pass

    def __enter__(self) -> SessionManager:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
