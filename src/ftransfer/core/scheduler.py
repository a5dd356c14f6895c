"""
Group scheduler.

Connections are split into a fixed number of groups. Each non-empty group is
an asyncio task that walks its connections in order, forever: one sync pass
per connection (in a worker thread, the transfer clients are blocking), the
connection's poll delay, and a fixed pause after every full pass.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Sequence
from typing import Any

from ftransfer.core.types import Connection, SyncSummary
from ftransfer.exceptions import LedgerWriteError
from ftransfer.sync.runner import SyncRunner
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.core.scheduler")

DEFAULT_CYCLE_INTERVAL_S = 10.0
DEFAULT_SHUTDOWN_GRACE_S = 30.0


def split_connections(connections: Sequence[Connection], num_groups: int) -> dict[str, list[Connection]]:
    """
    Split connections into ``num_groups`` contiguous groups named ``group_1..group_n``.

    Each group gets ``len // num_groups`` connections; the last group also takes
    the remainder. With fewer connections than groups, only the last group is
    non-empty.
    """
    if num_groups < 1:
        raise ValueError(f"number of groups must be at least 1, got {num_groups}")

    per_group = len(connections) // num_groups
    groups: dict[str, list[Connection]] = {}
    for i in range(num_groups):
        start = i * per_group
        end = len(connections) if i == num_groups - 1 else start + per_group
        groups[f"group_{i + 1}"] = list(connections[start:end])
    return groups


class GroupScheduler:
    """Runs every group concurrently until stopped."""

    def __init__(
        self,
        groups: dict[str, list[Connection]],
        runner: SyncRunner,
        cycle_interval_s: float = DEFAULT_CYCLE_INTERVAL_S,
    ):
        self.groups = groups
        self.runner = runner
        self.cycle_interval_s = cycle_interval_s
        self.fatal_error: BaseException | None = None
        self.last_summaries: dict[str, SyncSummary] = {}

        self._stopping = asyncio.Event()
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def group_of(self, connection_name: str) -> str | None:
        for group_name, connections in self.groups.items():
            if any(c.name == connection_name for c in connections):
                return group_name
        return None

    def start(self) -> None:
        """Create one task per non-empty group. Must be called inside a running loop."""
        self._stopping.clear()
        self.runner.stop_event.clear()
        for group_name, connections in self.groups.items():
            if not connections:
                continue
            self._tasks[group_name] = asyncio.create_task(
                self._group_loop(group_name, connections), name=f"ftransfer-{group_name}"
            )
        logger.info(f"Scheduler started with {len(self._tasks)} active groups")

    def request_stop(self) -> None:
        """Signal every group to finish; in-flight passes stop between entries."""
        if not self._stopping.is_set():
            logger.info("Stop requested, finishing in-flight transfers")
        self._stopping.set()
        self.runner.stop_event.set()

    async def wait_stopped(self) -> None:
        await self._stopping.wait()

    async def stop(self, grace_s: float = DEFAULT_SHUTDOWN_GRACE_S) -> None:
        """
        Stop all groups.

        Waits up to ``grace_s`` for in-flight passes, then closes their clients
        and cancels the remaining tasks.
        """
        self.request_stop()
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=grace_s)
            if pending:
                logger.warning(f"{len(pending)} groups still busy after {grace_s}s, aborting transfers")
                self.runner.abort()
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def _group_loop(self, group_name: str, connections: list[Connection]) -> None:
        logger.info(f"Starting {group_name} with {len(connections)} connections")
        while not self._stopping.is_set():
            for connection in connections:
                if self._stopping.is_set():
                    return
                try:
                    summary = await asyncio.to_thread(self.runner.run_once, connection)
                    self.last_summaries[connection.name] = summary
                except LedgerWriteError as e:
                    logger.critical(f"Cannot record downloads, stopping all transfers: {e}")
                    self.fatal_error = e
                    self.request_stop()
                    return
                except Exception as e:
                    logger.error(f"Error processing {connection.name} in {group_name}: {e}", exc_info=True)

                if await self._sleep(connection.poll_delay_s):
                    return
            logger.debug(f"{group_name}: pass complete, sleeping {self.cycle_interval_s}s")
            if await self._sleep(self.cycle_interval_s):
                return

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True when a stop was requested."""
        if seconds <= 0:
            return self._stopping.is_set()
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True


async def run_until_signaled(scheduler: GroupScheduler, grace_s: float = DEFAULT_SHUTDOWN_GRACE_S) -> None:
    """Start ``scheduler`` and run until SIGINT/SIGTERM or a fatal error, then stop it."""
    loop = asyncio.get_running_loop()
    installed: list[Any] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform / not the main thread
            pass

    scheduler.start()
    try:
        await scheduler.wait_stopped()
    finally:
        await scheduler.stop(grace_s)
        for sig in installed:
            loop.remove_signal_handler(sig)


def run_forever(scheduler: GroupScheduler, grace_s: float = DEFAULT_SHUTDOWN_GRACE_S) -> BaseException | None:
    """
    Blocking entry point: run the scheduler until signaled and close the ledger.

    Returns:
        The fatal error that stopped the scheduler, if any
    """
    try:
        asyncio.run(run_until_signaled(scheduler, grace_s))
    finally:
        scheduler.runner.ledger.close()
    return scheduler.fatal_error
