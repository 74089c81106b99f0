"""Pending operations: asynchronously-submitted transactions and their status poller."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import ShellError
from .logger import get_logger

_log = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 3.0


class OperationState(Enum):
    PROCESSING = "Processing"
    ACCEPTED = "Accepted"
    FAILED = "Failed"


_TERMINAL_STATES = frozenset({OperationState.ACCEPTED, OperationState.FAILED})

# Node status strings that settle an operation; anything else keeps it processing.
_NODE_STATUS_MAP = {
    "Accepted": OperationState.ACCEPTED,
    "Rejected": OperationState.FAILED,
}


@dataclass
class PendingOperation:
    id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: OperationState = OperationState.PROCESSING

    @property
    def is_settled(self) -> bool:
        return self.state in _TERMINAL_STATES


@dataclass(frozen=True)
class OperationReceipt:
    """Returned by a handler that submitted an asynchronous remote operation."""
    id: str

    def __str__(self) -> str:
        return self.id


SettledCallback = Callable[[str, OperationState], None]


class PendingOperationTracker:
    """Operations submitted during this session, in submission order.

    The dispatcher adds operations from the main loop; the status poller
    settles them from its own thread. One external callback is told when an
    operation reaches a terminal state.
    """

    def __init__(self):
        self._ops: Dict[str, PendingOperation] = {}
        self._callback: Optional[SettledCallback] = None
        self._lock = threading.Lock()

    def add(self, op_id: str) -> PendingOperation:
        """Track ``op_id``. An id already tracked keeps its existing entry."""
        with self._lock:
            op = self._ops.get(op_id)
            if op is not None:
                return op
            op = PendingOperation(id=op_id)
            self._ops[op_id] = op
        _log.info("Tracking operation %s", op_id)
        return op

    def get(self, op_id: str) -> Optional[PendingOperation]:
        with self._lock:
            return self._ops.get(op_id)

    def list(self) -> List[PendingOperation]:
        with self._lock:
            return list(self._ops.values())

    def processing(self) -> List[PendingOperation]:
        with self._lock:
            return [op for op in self._ops.values() if not op.is_settled]

    def set_callback(self, callback: Optional[SettledCallback]) -> None:
        """Register the single settlement sink. A second call replaces the first."""
        with self._lock:
            self._callback = callback

    def settle(self, op_id: str, state: OperationState) -> bool:
        """Move ``op_id`` to a terminal state; returns True when it changed."""
        if state not in _TERMINAL_STATES:
            raise ValueError(f"Not a terminal state: {state}")

        with self._lock:
            op = self._ops.get(op_id)
            if op is None or op.is_settled:
                return False
            op.state = state
            callback = self._callback

        _log.info("Operation %s settled: %s", op_id, state.value)
        if callback is not None:
            try:
                callback(op_id, state)
            except Exception:
                _log.exception("Settlement callback failed for %s", op_id)
        return True


class StatusPoller(threading.Thread):
    """Daemon thread that asks the node about every processing operation."""

    def __init__(self, tracker: PendingOperationTracker, client, interval: float = DEFAULT_POLL_INTERVAL):
        super().__init__(name="ava-status-poller", daemon=True)
        self.tracker = tracker
        self.client = client
        self.interval = interval
        self._shutdown = threading.Event()

    def run(self):
        while not self._shutdown.wait(self.interval):
            self.poll_once()

    def poll_once(self) -> int:
        """Check each processing operation once; returns how many settled."""
        settled = 0
        for op in self.tracker.processing():
            try:
                status = self.client.get_tx_status(op.id)
            except ShellError as e:
                _log.warning("Status check for %s failed: %s", op.id, e)
                continue

            state = _NODE_STATUS_MAP.get(str(status))
            if state is not None and self.tracker.settle(op.id, state):
                settled += 1
        return settled

    def stop(self) -> None:
        self._shutdown.set()
