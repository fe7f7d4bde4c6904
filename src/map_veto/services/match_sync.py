"""Keeps one client's view of a room's session in step with the store."""

import logging
import threading
from typing import Callable

from map_veto.errors import VersionConflict
from map_veto.models.events import MatchEvent
from map_veto.models.match import MatchSession, diff_sessions
from map_veto.repositories.session_store import SessionStore, Subscription
from map_veto.services.draft_state_machine import Transition

logger = logging.getLogger(__name__)

Derive = Callable[[MatchSession], Transition]


class MatchSynchronizer:
    """Observes one room in the store and submits derived changes to it.

    `current` only moves forward when the store reports a committed session
    (an echo of our own write, another writer's write, or a refresh); local
    derivations are never shown as state until the store accepts them.
    """

    def __init__(
        self,
        store: SessionStore,
        room_id: str,
        factory: Callable[[str], MatchSession],
    ):
        self.store = store
        self.room_id = room_id
        self._factory = factory
        self._current: MatchSession | None = None
        self._subscription: Subscription | None = None
        self._lock = threading.Lock()
        self._start_lock = threading.Lock()

    def start(self) -> MatchSession:
        """Subscribe, then read the session, creating it on first use.

        Safe to call again or from several threads; the store subscription
        is only made once.
        """
        with self._start_lock:
            if self._subscription is None:
                self._subscription = self.store.subscribe(self.room_id, self._observe)
            session = self.store.read(self.room_id)
            if session is None:
                session = self.store.create(self._factory(self.room_id))
            self._observe(session)
        return self.current

    @property
    def started(self) -> bool:
        with self._lock:
            return self._subscription is not None and self._current is not None

    @property
    def current(self) -> MatchSession:
        with self._lock:
            if self._current is None:
                raise RuntimeError(f"Synchronizer for room {self.room_id} was not started")
            return self._current

    def refresh(self) -> MatchSession:
        session = self.store.read(self.room_id)
        if session is not None:
            self._observe(session)
        return self.current

    def submit(
        self,
        derive: Derive,
        expected_version: int | None = None,
        max_retries: int = 0,
    ) -> tuple[MatchSession, list[MatchEvent]]:
        """Derive a change from the last observed session and write it.

        Args:
            derive: Pure function from base session to Transition
            expected_version: Version the caller based its intent on. A
                mismatch with the observed version is rejected without writing.
            max_retries: Re-derivations allowed after a conflicting write.
                Ignored when `expected_version` pins the base.

        Returns:
            (committed session, events of the accepted transition)

        Raises:
            VersionConflict: Base was stale and no retries remain.
        """
        attempts = 0
        while True:
            base = self.current
            if expected_version is not None and expected_version != base.version:
                raise VersionConflict(self.room_id, expected_version, base.version)

            transition = derive(base)
            patch = diff_sessions(base, transition.session)
            if not patch:
                return base, transition.events

            try:
                committed = self.store.write(self.room_id, patch, expected_version=base.version)
            except VersionConflict:
                self.refresh()
                if expected_version is None and attempts < max_retries:
                    attempts += 1
                    logger.info(
                        f"Re-deriving on room {self.room_id} (attempt {attempts}/{max_retries})"
                    )
                    continue
                raise

            self._observe(committed)
            return committed, transition.events

    def close(self) -> None:
        with self._start_lock:
            if self._subscription is not None:
                self._subscription.close()
                self._subscription = None

    def _observe(self, session: MatchSession) -> None:
        with self._lock:
            if self._current is None or session.version > self._current.version:
                self._current = session
