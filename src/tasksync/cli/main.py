# src/tasksync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the initial task list, then
runs the console REPL (optional) and the connectivity probe (optional)
on one asyncio loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..sync.connectivity import run_connectivity_probe

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    state.core.start()

    probe: asyncio.Task[None] | None = None
    try:
        outcome = await state.facade.load()
        if outcome.ok:
            logger.info("Loaded %d tasks (online=%s).", len(outcome.tasks), state.facade.is_online)
        else:
            logger.error("Initial load failed: %s", outcome.message)

        if settings.probe_enabled:
            probe = asyncio.create_task(
                run_connectivity_probe(
                    state.monitor,
                    state.remote,
                    interval_seconds=settings.probe_interval_seconds,
                )
            )

        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled. Running the connectivity probe only. Press Ctrl+C to stop.")
            await asyncio.Event().wait()
    finally:
        if probe is not None:
            probe.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await probe
        await shutdown_state(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
