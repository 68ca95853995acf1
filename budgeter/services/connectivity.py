"""
Connectivity Signal

A boolean the sync manager reads on every call, plus online/offline
transition events for whoever schedules sweeps.

The host platform (mobile shell, desktop network manager, a probe loop)
owns the truth and pushes it in through set_online(). The core itself
never polls.
"""

import asyncio
from typing import Callable, Optional

import structlog

from budgeter.config import SyncSettings, get_settings


ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Holds the current online state and notifies subscribers on transitions.

    Listeners run synchronously inside set_online(), in subscription order,
    and only when the state actually changes.
    """

    def __init__(
        self,
        online: bool = True,
        settings: Optional[SyncSettings] = None,
    ):
        self._online = online
        self._listeners: list[ConnectivityListener] = []
        self._settings = settings or get_settings().sync
        self._logger = structlog.get_logger(__name__)

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Record a new state; fire listeners if it differs from the old one."""
        if online == self._online:
            return
        self._online = online
        self._logger.info("connectivity_changed", online=online)

        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                # A broken listener must not stop the others
                self._logger.error(
                    "connectivity_listener_failed",
                    error=str(e),
                    listener=repr(listener),
                )

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """
        Register a transition listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def probe(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Check reachability with a TCP handshake and update the state.

        Callers decide when (and whether) to probe.
        """
        host = host or self._settings.probe_host
        port = port or self._settings.probe_port
        timeout = timeout or self._settings.probe_timeout_seconds

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            self._logger.debug("connectivity_probe_failed", host=host, port=port, error=str(e))
            self.set_online(False)
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        self.set_online(True)
        return True
