from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .api import Budget, DeltaResult, Unavailable
from .errors import FetchUnavailable, SyncError, WriteFailed
from .mapping import BudgetReading, iter_exported_categories, map_category


DEFAULT_INTERVAL_S = 60.0

Fetcher = Callable[[str, Optional[int]], DeltaResult]
Flusher = Callable[[List[BudgetReading]], int]


@dataclass
class SyncState:
    cursor: Optional[int] = None
    pending: List[BudgetReading] = field(default_factory=list)
    cycles: int = 0


@dataclass(frozen=True)
class CycleResult:
    ok: bool
    reason: str
    written: int
    cursor: Optional[int]
    error: Optional[SyncError] = None


class SyncLoop:
    """Fetch -> map -> write -> sleep loop for one budget.

    Owns the knowledge cursor and the pending readings. Fetching, flushing and
    sleeping are injected; the loop reports failures as a CycleResult and never
    exits the process itself.
    """

    def __init__(
        self,
        budget: Budget,
        fetch: Fetcher,
        flush: Flusher,
        sleep: Callable[[float], None] = time.sleep,
        interval_s: float = DEFAULT_INTERVAL_S,
        debug: bool = False,
    ) -> None:
        self.budget = budget
        self.state = SyncState()
        self._fetch = fetch
        self._flush = flush
        self._sleep = sleep
        self.interval_s = interval_s
        self.debug = debug

    def _prefix(self) -> str:
        return f"[{self.state.cursor} -> '{self.budget.name}']"

    def run_cycle(self) -> CycleResult:
        state = self.state

        result = self._fetch(self.budget.id, state.cursor)
        if isinstance(result, Unavailable):
            err = FetchUnavailable(f"category fetch unavailable (status={result.status}): {result.detail}")
            return CycleResult(False, err.kind, 0, state.cursor, err)

        # Advance before mapping; a checkpoint of the cursor would belong here
        if self.debug:
            print(f"[DEBUG] cursor {state.cursor} -> {result.server_knowledge}, groups={len(result.groups)}")
        state.cursor = result.server_knowledge

        for category in iter_exported_categories(result.groups):
            state.pending.append(map_category(self.budget.name, category))

        if not state.pending:
            print(f"{self._prefix()} Nothing to write ...")
            return CycleResult(True, "nothing to write", 0, state.cursor)

        count = len(state.pending)
        print(f"{self._prefix()} Writing {count} readings ...")
        try:
            written = self._flush(state.pending)
        except WriteFailed as e:
            return CycleResult(False, e.kind, 0, state.cursor, e)
        state.pending.clear()
        print(f"{self._prefix()} Successfully written ...")
        return CycleResult(True, "written", written, state.cursor)

    def run(self, max_cycles: Optional[int] = None) -> CycleResult:
        """Run cycles until one fails (or ``max_cycles`` succeed).

        Sleeps ``interval_s`` after every successful cycle.
        """
        print("Starting fetch loop ...")
        while True:
            res = self.run_cycle()
            if not res.ok:
                return res
            self.state.cycles += 1
            if max_cycles is not None and self.state.cycles >= max_cycles:
                return res
            self._sleep(self.interval_s)
