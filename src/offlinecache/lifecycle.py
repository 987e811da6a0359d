"""Worker lifecycle state machine."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from offlinecache.errors import ErrorCode, OfflineCacheError

if TYPE_CHECKING:
    from offlinecache.clients import ClientRegistry

log = structlog.get_logger()


class WorkerState(StrEnum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


_TRANSITIONS: dict[WorkerState, frozenset[WorkerState]] = {
    WorkerState.PARSED: frozenset({WorkerState.INSTALLING}),
    WorkerState.INSTALLING: frozenset({WorkerState.INSTALLED, WorkerState.REDUNDANT}),
    WorkerState.INSTALLED: frozenset({WorkerState.ACTIVATING, WorkerState.REDUNDANT}),
    WorkerState.ACTIVATING: frozenset({WorkerState.ACTIVATED, WorkerState.REDUNDANT}),
    WorkerState.ACTIVATED: frozenset({WorkerState.REDUNDANT}),
    WorkerState.REDUNDANT: frozenset(),
}


class WorkerLifecycle:
    """Tracks install/activate progress for one worker version.

    After install, a worker waits while clients controlled by another version
    are still connected, unless skip-waiting was requested.
    """

    def __init__(self, version: str) -> None:
        self.version = version
        self.state = WorkerState.PARSED
        self._skip_waiting = asyncio.Event()

    @property
    def skip_waiting_requested(self) -> bool:
        return self._skip_waiting.is_set()

    @property
    def intercepts_fetches(self) -> bool:
        return self.state is WorkerState.ACTIVATED

    def skip_waiting(self) -> None:
        if not self._skip_waiting.is_set():
            log.info("skip_waiting_requested", version=self.version, state=self.state)
        self._skip_waiting.set()

    def transition(self, target: WorkerState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise OfflineCacheError(
                code=ErrorCode.INVALID_STATE,
                message=f"Cannot move worker {self.version!r} from {self.state} to {target}",
            )
        log.debug("worker_state_changed", version=self.version, old=self.state, new=target)
        self.state = target

    def is_waiting(self, clients: ClientRegistry) -> bool:
        return (
            self.state is WorkerState.INSTALLED
            and not self.skip_waiting_requested
            and clients.has_foreign_clients(self.version)
        )

    async def wait_for_clearance(self, clients: ClientRegistry) -> None:
        """Return once this installed worker may activate."""
        if self.is_waiting(clients):
            log.info("worker_waiting", version=self.version)
            await self._skip_waiting.wait()
