import asyncio
import inspect
import logging
from typing import Callable, Dict, List, Optional

from textqa_agent.data import FileChange
from textqa_agent.executor.incremental_executor import IncrementalExecutor


class TestFileMonitor:
    """Polls the scenario directory and reports changed files.

    A change is reported once the set of changed files has stayed the same
    for ``debounce_delay`` seconds, so a file that is still being written
    is not picked up half-way.
    """

    __test__ = False

    def __init__(
        self,
        incremental: Optional[IncrementalExecutor] = None,
        debounce_delay: float = 0.5,
        poll_interval: float = 1.0,
    ):
        self.incremental = incremental or IncrementalExecutor()
        self.debounce_delay = debounce_delay
        self.poll_interval = poll_interval
        self._stopped = asyncio.Event()
        self._reported: Dict[str, str] = {}

    def stop(self):
        self._stopped.set()

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped. Returns True when the monitor was
        stopped."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def poll_once(self) -> List[FileChange]:
        changes = self.incremental.get_changed_tests()
        if not changes:
            return []
        if await self._sleep(self.debounce_delay):
            return []
        settled = self.incremental.get_changed_tests()
        if [c.file for c in settled] != [c.file for c in changes]:
            return []

        # Report each content version once, even if the callback never marks it run.
        fresh = []
        for change in settled:
            digest = self.incremental.calculate_file_hash(change.file)
            if self._reported.get(change.file) != digest:
                self._reported[change.file] = digest
                fresh.append(change)
        return fresh

    async def watch_test_files(self, on_change: Callable[[List[FileChange]], object]):
        logging.info(f"Watching scenario files in: {self.incremental.scenarios_dir}")
        while not self._stopped.is_set():
            changes = await self.poll_once()
            if changes:
                logging.info(f"Detected {len(changes)} changed scenario file(s)")
                outcome = on_change(changes)
                if inspect.isawaitable(outcome):
                    await outcome
            if await self._sleep(self.poll_interval):
                break
        logging.info("Stopped watching scenario files")
