"""Session registry with per-target locking.

Owns the mapping target_id -> Session and routes inbound CDP events through
normalize -> filters -> ring buffer.

PUBLIC API:
  - SessionManager: Observe/stop/query sessions, reclaim idle ones
  - Session: One observed target
  - SessionState: Per-target lifecycle state
"""

import functools
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from cdptap.buffer import RingBuffer
from cdptap.cdp.normalize import METHOD_CATEGORIES, NORMALIZERS, normalize
from cdptap.cdp.session import TransportError
from cdptap.cdp.targets import TargetInfo
from cdptap.cdp.transport import CDPTransport, TargetMissing
from cdptap.config import Config, validate_host
from cdptap.errors import (
    AlreadyObserving,
    BrowserUnreachable,
    ConnectionFailed,
    InvalidInput,
    NotObserving,
    SessionDetached,
    SessionNotFound,
    TargetNotFound,
)
from cdptap.filters import FilterConfig, FilterPipeline

logger = logging.getLogger(__name__)

__all__ = ["SessionManager", "Session", "SessionState", "Transport"]


class Transport(Protocol):
    """What SessionManager needs from the CDP layer."""

    def list_targets(self, host: str, port: int) -> list[TargetInfo]: ...

    def connect(self, host: str, port: int, target_id: str) -> Any: ...


class SessionState(str, Enum):
    """Per-target lifecycle state."""

    ATTACHED = "attached"
    DETACHED = "detached"
    REMOVED = "removed"


@dataclass
class Session:
    """One observed target.

    Attributes:
        target_id: Chrome target ID, unique key in the registry.
        handle: Live CDP connection, None once detached.
        buffer: Event ring buffer, survives detach.
        filters: Capture filters applied before push.
        ttl_sec: Idle TTL override, None uses the configured default.
        created_at: Attach time (epoch seconds).
        state: Lifecycle state.
        lock: Guards buffer, filters, handle and state.
    """

    target_id: str
    handle: Any | None
    buffer: RingBuffer
    filters: FilterPipeline
    ttl_sec: float | None = None
    created_at: float = 0.0
    state: SessionState = SessionState.ATTACHED
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def attached(self) -> bool:
        return self.state == SessionState.ATTACHED

    @property
    def last_activity_at(self) -> float:
        return self.buffer.last_update_at

    def summary(self) -> dict:
        """Snapshot for display. Caller should hold the lock."""
        return {
            "targetId": self.target_id,
            "state": self.state.value,
            "createdAt": self.created_at,
            "size": self.buffer.size(),
            "capacity": self.buffer.capacity,
            "oldestOffset": self.buffer.oldest_sequence,
            "nextOffset": self.buffer.next_sequence,
            "ttlSec": self.ttl_sec,
            "lastActivityAt": self.last_activity_at,
        }


class SessionManager:
    """Thread-safe registry of observed targets.

    Locking: the global lock guards the session map, each Session.lock guards
    that session's contents. The two are never held at the same time, and
    network I/O (connect, close) happens outside both.

    Attributes:
        config: Resolved settings.
        transport: CDP transport (list_targets, connect).
    """

    def __init__(
        self,
        config: Config | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize SessionManager with empty state.

        Args:
            config: Settings, defaults to Config().
            transport: CDP transport, defaults to CDPTransport().
            clock: Wall-clock source in seconds, shared with buffers.
        """
        self.config = config or Config()
        self.transport = transport or CDPTransport()
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._connecting: set[str] = set()
        self._global_lock = threading.Lock()

    # Discovery

    def list_targets(self, host: str | None = None, port: int | None = None) -> list[TargetInfo]:
        """Enumerate live targets.

        Raises:
            BrowserUnreachable: If Chrome cannot be queried.
        """
        host = host or self.config.cdp_host
        port = port or self.config.cdp_port
        validate_host(host, self.config)
        try:
            return self.transport.list_targets(host, port)
        except TransportError as e:
            raise BrowserUnreachable(str(e)) from e

    # Lifecycle

    def observe(
        self,
        target_id: str | None = None,
        url_includes: str | None = None,
        host: str | None = None,
        port: int | None = None,
        buffer_size: int | None = None,
        ttl_sec: float | None = None,
    ) -> Session:
        """Attach to a target and start capturing its events.

        Args:
            target_id: Explicit target ID.
            url_includes: URL substring, used when target_id is not given.
            host: Chrome host, defaults to config.
            port: Chrome port, defaults to config.
            buffer_size: Ring buffer capacity, defaults to config.
            ttl_sec: Idle TTL for this session, defaults to config.

        Returns:
            The new attached Session.

        Raises:
            InvalidInput: If no selector or bad sizes are given.
            TargetNotFound: If url_includes matches nothing or the target is not live.
            AlreadyObserving: If the target already has a session.
            ConnectionFailed: If the transport cannot attach.
        """
        if not target_id and not url_includes:
            raise InvalidInput("Either target_id or url_includes must be provided")
        if buffer_size is not None and buffer_size < 1:
            raise InvalidInput("buffer_size must be positive")
        if ttl_sec is not None and ttl_sec <= 0:
            raise InvalidInput("ttl_sec must be positive")

        host = host or self.config.cdp_host
        port = port or self.config.cdp_port
        validate_host(host, self.config)

        resolved = target_id
        if not resolved:
            match = next((t for t in self.list_targets(host, port) if url_includes in t.url), None)
            if match is None:
                raise TargetNotFound(f"No target found with URL containing: {url_includes}")
            resolved = match.id

        with self._global_lock:
            if resolved in self._sessions or resolved in self._connecting:
                raise AlreadyObserving(f"Already observing target: {resolved}")
            self._connecting.add(resolved)

        try:
            try:
                handle = self.transport.connect(host, port, resolved)
            except TargetMissing as e:
                raise TargetNotFound(f"Target not found: {resolved}") from e
            except TransportError as e:
                raise ConnectionFailed(f"Failed to connect to target {resolved}: {e}") from e

            session = Session(
                target_id=resolved,
                handle=handle,
                buffer=RingBuffer(buffer_size or self.config.default_buffer_size, clock=self._clock),
                filters=FilterPipeline(),
                ttl_sec=ttl_sec,
                created_at=self._clock(),
            )
            try:
                self._subscribe(session, handle)
            except Exception:
                self._close_quietly(handle, resolved)
                raise

            with self._global_lock:
                self._sessions[resolved] = session
        finally:
            with self._global_lock:
                self._connecting.discard(resolved)

        logger.info(f"Observing {resolved} (buffer={session.buffer.capacity})")
        return session

    def stop_observe(self, target_id: str, drop_buffer: bool = False) -> None:
        """Close the connection, keeping the buffer unless drop_buffer.

        A detached session can still be dropped with drop_buffer=True.

        Raises:
            NotObserving: If the target has no live session.
        """
        session = self.find_session(target_id)
        if session is None:
            raise NotObserving(f"Not observing target: {target_id}")

        with session.lock:
            if session.state == SessionState.REMOVED or (session.state == SessionState.DETACHED and not drop_buffer):
                raise NotObserving(f"Not observing target: {target_id}")
            handle = session.handle
            session.handle = None
            session.state = SessionState.REMOVED if drop_buffer else SessionState.DETACHED

        if drop_buffer:
            self._unregister(session)

        if handle is not None:
            try:
                handle.close()
            except Exception as e:
                logger.warning(f"Error closing connection to {target_id}: {e}")

        logger.info(f"Stopped observing {target_id} ({'dropped' if drop_buffer else 'buffer kept'})")

    # Lookups

    def find_session(self, target_id: str) -> Session | None:
        with self._global_lock:
            return self._sessions.get(target_id)

    def get_session(self, target_id: str) -> Session:
        """Get session by target ID.

        Raises:
            SessionNotFound: If the target has no session.
        """
        session = self.find_session(target_id)
        if session is None:
            raise SessionNotFound(f"No session found for target: {target_id}")
        return session

    def sessions(self) -> list[Session]:
        with self._global_lock:
            return list(self._sessions.values())

    def require_handle(self, target_id: str) -> Any:
        """Live connection for commands that talk to the target.

        Raises:
            SessionNotFound: If the target has no session.
            SessionDetached: If the session kept its buffer but lost its connection.
        """
        session = self.get_session(target_id)
        with session.lock:
            if session.handle is None:
                raise SessionDetached(f"Session for {target_id} is detached; observe it again to reconnect")
            return session.handle

    # Mutators

    def set_filters(self, target_id: str, config: FilterConfig) -> None:
        session = self.get_session(target_id)
        with session.lock:
            session.filters.set(config)

    def get_filters(self, target_id: str) -> FilterConfig:
        session = self.get_session(target_id)
        with session.lock:
            return session.filters.config

    def clear_events(self, target_id: str) -> None:
        """Reset one target's buffer. Sequence numbering restarts at 0."""
        session = self.get_session(target_id)
        with session.lock:
            session.buffer.clear()

    # Reclamation

    def gc(self, now: float | None = None) -> list[str]:
        """Remove sessions idle past their TTL.

        Live connections are closed best-effort; close failures are swallowed.

        Args:
            now: Override current time (epoch seconds).

        Returns:
            Target IDs that were removed.
        """
        now = self._clock() if now is None else now
        removed = []

        for session in self.sessions():
            with session.lock:
                ttl = session.ttl_sec or self.config.default_ttl_sec
                if session.state == SessionState.REMOVED or not session.buffer.is_expired(ttl, now):
                    continue
                session.state = SessionState.REMOVED
                handle = session.handle
                session.handle = None

            self._unregister(session)

            if handle is not None:
                self._close_quietly(handle, session.target_id)

            removed.append(session.target_id)
            logger.info(f"gc: removed idle session {session.target_id} (ttl={ttl}s)")

        return removed

    def close_all(self) -> None:
        """Close every connection and forget all sessions."""
        for session in self.sessions():
            with session.lock:
                handle = session.handle
                session.handle = None
                session.state = SessionState.REMOVED
            self._unregister(session)
            if handle is not None:
                self._close_quietly(handle, session.target_id)

    # Internals

    def _close_quietly(self, handle: Any, target_id: str) -> None:
        try:
            handle.close()
        except Exception as e:
            logger.debug(f"Ignoring close failure for {target_id}: {e}")

    def _unregister(self, session: Session) -> None:
        with self._global_lock:
            if self._sessions.get(session.target_id) is session:
                del self._sessions[session.target_id]

    def _subscribe(self, session: Session, handle: Any) -> None:
        for method in NORMALIZERS:
            handle.on(method, functools.partial(self._ingest, session, method))

        if hasattr(handle, "set_disconnect_callback"):
            handle.set_disconnect_callback(functools.partial(self._handle_disconnect, session))

    def _ingest(self, session: Session, method: str, params: dict, session_id: str | None = None) -> None:
        """Event callback: normalize, filter, push. Never raises."""
        try:
            with session.lock:
                if session.state == SessionState.REMOVED:
                    return
                if not session.filters.admits_category(METHOD_CATEGORIES[method]):
                    return
                max_bytes = session.filters.max_body_bytes(self.config.max_body_bytes)
                event = normalize(method, params, session.target_id, session_id=session_id, max_bytes=max_bytes)
                if event is not None and session.filters.admits(event):
                    session.buffer.push(event)
        except Exception as e:
            logger.warning(f"Dropped malformed {method} event for {session.target_id}: {e}")

    def _handle_disconnect(self, session: Session, code: int | None, reason: str | None) -> None:
        """Connection closed under us: keep the buffer, drop the handle."""
        with session.lock:
            if session.state != SessionState.ATTACHED:
                return
            session.state = SessionState.DETACHED
            session.handle = None
        logger.warning(f"Connection to {session.target_id} lost (code={code} reason={reason}); buffer kept")
