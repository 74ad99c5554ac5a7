# src/tasksync/sync/connectivity.py

from __future__ import annotations

"""
Connectivity sources.

ManualConnectivityMonitor holds the online flag and fans transitions out
to async listeners. run_connectivity_probe is a small polling loop that
drives it from the server's reachability; the sync core itself never polls.
"""

import asyncio
import logging
from collections.abc import Callable

from ..core.ports import RemoteTaskRepo, TransitionListener

logger = logging.getLogger(__name__)


class ManualConnectivityMonitor:
    def __init__(self, initial: bool = True) -> None:
        self._online = bool(initial)
        self._listeners: list[TransitionListener] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def set_online(self, online: bool) -> bool:
        """
        Set the connectivity flag.

        Listeners run only on an actual transition, in subscription order,
        and are awaited one after another. Returns True if state changed.
        """
        online = bool(online)
        if online == self._online:
            return False

        self._online = online
        logger.info("Connectivity -> %s", "online" if online else "offline")

        for listener in list(self._listeners):
            try:
                await listener(online)
            except Exception:
                logger.exception("Connectivity listener failed (online=%s)", online)
        return True


async def run_connectivity_probe(
        monitor: ManualConnectivityMonitor,
        remote: RemoteTaskRepo,
        *,
        interval_seconds: float = 15.0,
) -> None:
    """
    Polling loop.

    Every interval_seconds:
    - ping the server
    - feed the result into the monitor (listeners fire only on change)

    To stop the probe, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            reachable = await remote.ping()
        except Exception:
            logger.exception("Connectivity probe failed")
            reachable = False

        await monitor.set_online(reachable)
        await asyncio.sleep(sleep_s)
