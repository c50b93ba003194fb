import asyncio
import signal
from typing import Any

from loguru import logger

from poller.app.composition import HandlerSetup, create_poller_dependencies
from poller.app.config.settings import Settings
from poller.app.core import SERVICE_NAME
from poller.app.ports.queue_transport import QueueTransport


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def run_poller(
    settings: Settings | None = None,
    *,
    configure_handlers: HandlerSetup | None = None,
    transport: QueueTransport | None = None,
    shutdown: asyncio.Event | None = None,
    install_signal_handlers: bool = True,
) -> None:
    """Run the poller until `shutdown` is set (by SIGINT/SIGTERM unless disabled)."""
    deps = create_poller_dependencies(
        settings,
        configure_handlers=configure_handlers,
        transport=transport,
    )
    shutdown = shutdown or asyncio.Event()

    def request_shutdown() -> None:
        if not shutdown.is_set():
            _log("shutdown_signal")
            shutdown.set()

    if install_signal_handlers:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, request_shutdown)
            except NotImplementedError:
                pass

    _log("poller_starting", transport_backend=deps.settings.transport_backend)
    await deps.connect()
    try:
        loop_task = asyncio.create_task(deps.polling_loop.run(shutdown))
        shutdown_task = asyncio.create_task(shutdown.wait())
        try:
            await asyncio.wait({loop_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            shutdown_task.cancel()

        if not loop_task.done():
            # Let the in-flight message finish and be deleted before giving up on it.
            try:
                await asyncio.wait_for(asyncio.shield(loop_task), timeout=deps.settings.shutdown_grace_seconds)
            except asyncio.TimeoutError:
                _log("shutdown_grace_expired", grace_seconds=deps.settings.shutdown_grace_seconds)
                loop_task.cancel()
                try:
                    await loop_task
                except asyncio.CancelledError:
                    pass
        else:
            loop_task.result()
    finally:
        await deps.close()
        _log("poller_stopped")


def main() -> None:
    try:
        asyncio.run(run_poller())
    except KeyboardInterrupt:
        _log("poller_interrupted")
    except Exception as e:
        logger.exception("poller failed: {}", e)
        raise


if __name__ == "__main__":
    main()
