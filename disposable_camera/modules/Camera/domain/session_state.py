"""Roll state machine: remaining shots, roll name and album binding."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger

from ..defaults import (
    ALBUM_ID_KEY,
    DEFAULT_SESSION_NAME,
    MAX_SHOTS,
    REMAINING_SHOTS_KEY,
    RENAME_REQUESTED_KEY,
    SESSION_NAME_KEY,
)
from ..interfaces import KeyValueStore


class TransitionKind(Enum):
    """Kinds of roll state transitions."""

    DECREMENT = auto()
    ZERO_CROSSING = auto()
    MANUAL_RESET = auto()
    RENAME = auto()
    RENAME_REQUESTED = auto()
    ALBUM_BOUND = auto()


@dataclass(frozen=True, slots=True)
class RollSnapshot:
    """Immutable view of the roll at one instant."""

    remaining_shots: int
    session_name: str
    album_id: Optional[str]
    rename_requested: bool


@dataclass(frozen=True, slots=True)
class SessionTransition:
    kind: TransitionKind
    before: RollSnapshot
    after: RollSnapshot

    @property
    def raised_rename(self) -> bool:
        """True when this transition is what asked the operator for a name."""
        return self.after.rename_requested and not self.before.rename_requested


class SessionState:
    """The roll's mutable identity, persisted through a KeyValueStore.

    All transitions run under one lock and write ``remainingShots`` and
    ``sessionName`` back to the store before returning. ``remaining_shots``
    stays within ``[1, max_shots]``; the decrement that would reach zero
    resets to ``max_shots`` inside the same transition.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_shots: int = MAX_SHOTS,
        default_name: str = DEFAULT_SESSION_NAME,
        logger: LoggerLike = None,
    ) -> None:
        if max_shots < 1:
            raise ValueError("max_shots must be at least 1")
        self._store = store
        self._max_shots = max_shots
        self._default_name = default_name.strip() or DEFAULT_SESSION_NAME
        self._lock = threading.RLock()
        self.logger = ensure_structured_logger(logger, component="SessionState", fallback_name=__name__)

        self._rename_requested = False
        self._remaining_shots = self._max_shots
        self._session_name = self._default_name
        self._album_id: Optional[str] = None
        self._load()

    # ------------------------------------------------------------------
    # Loading

    def _load(self) -> None:
        stored_count = self._store.get_int(REMAINING_SHOTS_KEY)
        stored_name = self._store.get_string(SESSION_NAME_KEY)
        stored_album = self._store.get_string(ALBUM_ID_KEY)
        stored_rename = self._store.get_string(RENAME_REQUESTED_KEY)

        count = stored_count if stored_count is not None else self._max_shots
        if count <= 0 or count > self._max_shots:
            self.logger.warning(
                "Persisted remaining shots %s out of range; resetting to %d",
                stored_count,
                self._max_shots,
            )
            count = self._max_shots

        self._remaining_shots = count
        self._session_name = self.normalize_name(stored_name)
        self._album_id = stored_album or None
        # Pending rename survives restarts
        self._rename_requested = (stored_rename or "").strip().lower() == "true"

        with self._lock:
            self._persist_locked()
        self.logger.info(
            "Loaded roll '%s' with %d/%d shots remaining (album=%s)",
            self._session_name,
            self._remaining_shots,
            self._max_shots,
            self._album_id,
        )

    # ------------------------------------------------------------------
    # Accessors

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def max_shots(self) -> int:
        return self._max_shots

    @property
    def default_name(self) -> str:
        return self._default_name

    @property
    def remaining_shots(self) -> int:
        with self._lock:
            return self._remaining_shots

    @property
    def session_name(self) -> str:
        with self._lock:
            return self._session_name

    @property
    def album_id(self) -> Optional[str]:
        with self._lock:
            return self._album_id

    @property
    def rename_requested(self) -> bool:
        with self._lock:
            return self._rename_requested

    def snapshot(self) -> RollSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def normalize_name(self, name: Optional[str]) -> str:
        # Single-line, single-spaced; the state file stores one line per key
        collapsed = " ".join((name or "").split())
        return collapsed or self._default_name

    # ------------------------------------------------------------------
    # Transitions

    def record_save_success(self) -> SessionTransition:
        """Apply the decrement owed to one successfully persisted photo."""
        with self._lock:
            before = self._snapshot_locked()
            remaining = self._remaining_shots
            if remaining > 0:
                remaining -= 1

            kind = TransitionKind.DECREMENT
            if remaining == 0:
                remaining = self._max_shots
                self._rename_requested = True
                self._persist_rename_flag_locked()
                kind = TransitionKind.ZERO_CROSSING

            self._remaining_shots = remaining
            self._persist_locked()
            transition = SessionTransition(kind, before, self._snapshot_locked())

        if kind is TransitionKind.ZERO_CROSSING:
            self.logger.info(
                "Roll '%s' finished; reset to %d shots and requested a new name",
                before.session_name,
                self._max_shots,
            )
        else:
            self.logger.debug("Shot recorded; %d remaining", transition.after.remaining_shots)
        return transition

    def request_rename(self) -> SessionTransition:
        """Raise the naming prompt without touching the counter (first launch)."""
        with self._lock:
            before = self._snapshot_locked()
            self._rename_requested = True
            self._persist_rename_flag_locked()
            transition = SessionTransition(TransitionKind.RENAME_REQUESTED, before, self._snapshot_locked())
        self.logger.debug("Rename requested for roll '%s'", before.session_name)
        return transition

    def rename(self, name: Optional[str]) -> SessionTransition:
        """Set the roll name directly; the rename request flag is left as is."""
        with self._lock:
            before = self._snapshot_locked()
            self._apply_name_locked(name)
            self._persist_locked()
            transition = SessionTransition(TransitionKind.RENAME, before, self._snapshot_locked())
        self.logger.info("Roll renamed '%s' -> '%s'", before.session_name, transition.after.session_name)
        return transition

    def resolve_rename(self, name: Optional[str]) -> SessionTransition:
        """Answer a rename request; a blank or cancelled name falls back to the default."""
        with self._lock:
            before = self._snapshot_locked()
            self._apply_name_locked(name)
            self._rename_requested = False
            self._persist_rename_flag_locked()
            self._persist_locked()
            transition = SessionTransition(TransitionKind.RENAME, before, self._snapshot_locked())
        self.logger.info("Rename resolved; roll is now '%s'", transition.after.session_name)
        return transition

    def manual_reset(self, name: Optional[str]) -> SessionTransition:
        """Start a fresh roll immediately, regardless of shots left."""
        with self._lock:
            before = self._snapshot_locked()
            self._remaining_shots = self._max_shots
            self._apply_name_locked(name)
            self._rename_requested = False
            self._persist_rename_flag_locked()
            self._persist_locked()
            transition = SessionTransition(TransitionKind.MANUAL_RESET, before, self._snapshot_locked())
        self.logger.info(
            "Manual reset: roll '%s' with %d shots",
            transition.after.session_name,
            self._max_shots,
        )
        return transition

    def bind_album(self, album_id: Optional[str], *, session_name: Optional[str] = None) -> bool:
        """Store the album id resolved for ``session_name``.

        Returns False (and changes nothing) when the roll was renamed while
        the album was being resolved.
        """
        with self._lock:
            if session_name is not None and session_name != self._session_name:
                self.logger.debug(
                    "Ignoring album %s resolved for stale roll '%s'",
                    album_id,
                    session_name,
                )
                return False
            self._album_id = album_id or None
            self._persist_album_locked()
        return True

    # ------------------------------------------------------------------
    # Internal helpers

    def _apply_name_locked(self, name: Optional[str]) -> None:
        new_name = self.normalize_name(name)
        if new_name != self._session_name:
            # Album belongs to the previous name
            self._album_id = None
            self._persist_album_locked()
        self._session_name = new_name

    def _snapshot_locked(self) -> RollSnapshot:
        return RollSnapshot(
            remaining_shots=self._remaining_shots,
            session_name=self._session_name,
            album_id=self._album_id,
            rename_requested=self._rename_requested,
        )

    def _persist_locked(self) -> None:
        self._store.set_int(REMAINING_SHOTS_KEY, self._remaining_shots)
        self._store.set_string(SESSION_NAME_KEY, self._session_name)

    def _persist_rename_flag_locked(self) -> None:
        if self._rename_requested:
            self._store.set_string(RENAME_REQUESTED_KEY, "true")
        else:
            self._store.remove_key(RENAME_REQUESTED_KEY)

    def _persist_album_locked(self) -> None:
        if self._album_id:
            self._store.set_string(ALBUM_ID_KEY, self._album_id)
        else:
            self._store.remove_key(ALBUM_ID_KEY)


__all__ = ["RollSnapshot", "SessionState", "SessionTransition", "TransitionKind"]
