"""Install-state polling that follows an accepted sideload upload."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from winiotctl.core.errors import SideloadCancelledError, SideloadTimeoutError
from winiotctl.core.model import ClientConfig, SideloadState
from winiotctl.core.payload import coerce_bool, json_object
from winiotctl.transports.base import Transport

STATE_PATH = "/api/app/packagemanager/state"
LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class SideloadPoller:
    """Turns the package manager's eventual install outcome into one result.

    The device answers the state endpoint with 204 while the install is still
    running and with 200 plus a ``Success`` flag once it has finished. Any
    non-2xx status aborts the poll; an unreadable 200 body is polled again.
    """

    def __init__(
        self,
        transport: Transport,
        config: ClientConfig,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._timeout_s = config.sideload_timeout_ms / 1000
        self._interval_s = config.poll_interval_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self.state = SideloadState.POLLING
        self.polls = 0
        self.elapsed_s = 0.0

    async def run(
        self,
        *,
        progress: Callable[[int], None] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> SideloadState:
        """Poll until the install succeeds or fails.

        Returns ``SideloadState.SUCCEEDED`` or ``SideloadState.FAILED``.

        Raises:
            TransportError: the state endpoint answered with a non-2xx status.
            SideloadTimeoutError: no terminal result before the deadline.
            SideloadCancelledError: ``cancel`` was set while polling.
        """
        started = self._clock()
        while self._clock() - started < self._timeout_s:
            if cancel is not None and cancel.is_set():
                self._finish(SideloadState.CANCELLED, started)
                raise SideloadCancelledError("Install state polling was cancelled")

            self.polls += 1
            response = await self._transport.request("GET", STATE_PATH)
            if response.status_code == 200:
                success = coerce_bool((json_object(response) or {}).get("Success"))
                if success is not None:
                    LOGGER.debug("Poll %d: install finished, Success=%s", self.polls, success)
                    return self._finish(
                        SideloadState.SUCCEEDED if success else SideloadState.FAILED,
                        started,
                    )
                LOGGER.debug("Poll %d: unreadable state body, retrying", self.polls)
            else:
                LOGGER.debug("Poll %d: status %d, still installing", self.polls, response.status_code)

            if progress is not None:
                progress(self.polls)
            await self._sleep(self._interval_s)

        self._finish(SideloadState.TIMED_OUT, started)
        raise SideloadTimeoutError(
            f"The install did not finish within {self._timeout_s:g}s ({self.polls} polls)"
        )

    def _finish(self, state: SideloadState, started: float) -> SideloadState:
        self.state = state
        self.elapsed_s = self._clock() - started
        return state
