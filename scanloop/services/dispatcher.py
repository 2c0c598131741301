"""
==============================================================================
Notification & Lookup Dispatcher Module
==============================================================================

Runs the side effects of a confirmed code.

Flow per ConfirmedEvent:
------------------------
1. Feedback (beep, vibrate) per config, best effort
2. presenter.show_detected(code), presenter.show_searching()
3. Lookup in a background task (the scan loop does not wait for it)
4. Success -> presenter.show_result(record), select hook if auto_select
5. LookupFailure -> presenter.show_not_found(code), no retry

Dispatches are independent of each other: rapid distinct codes may have
overlapping lookups and share no result state.

==============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Set, Union

from scanloop.config import ScannerConfig
from scanloop.core.exceptions import LookupFailure
from scanloop.scanner.models import ConfirmedEvent
from scanloop.services.feedback import FeedbackDevice
from scanloop.services.lookup_client import ProductRecord
from scanloop.services.presenter import Presenter


# Module logger
logger = logging.getLogger(__name__)

SelectHook = Callable[[ProductRecord], Union[None, Awaitable[Any]]]


class LookupService(Protocol):
    async def lookup(self, code: str) -> ProductRecord: ...


class NotificationDispatcher:
    """
    Dispatcher for confirmed events.

    Attributes:
        _config: Scanner configuration (feedback toggles, auto_select)
        _lookup: Lookup collaborator
        _presenter: Presentation hooks
        _feedback: Feedback device
        _select_hook: Optional callback for resolved products

    Example:
        >>> dispatcher = NotificationDispatcher(config, client, LoggingPresenter(),
        ...                                     TerminalFeedback())
        >>> task = dispatcher.dispatch(ConfirmedEvent("123", confirmed_at=0))
        >>> await dispatcher.wait_idle()
    """

    def __init__(
        self,
        config: ScannerConfig,
        lookup: LookupService,
        presenter: Presenter,
        feedback: FeedbackDevice,
        select_hook: Optional[SelectHook] = None,
    ) -> None:
        self._config = config
        self._lookup = lookup
        self._presenter = presenter
        self._feedback = feedback
        self._select_hook = select_hook
        self._in_flight: Set[asyncio.Task] = set()

    def configure(self, config: ScannerConfig) -> None:
        """Swap in a new scanner configuration."""
        self._config = config

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, event: ConfirmedEvent) -> asyncio.Task:
        """
        Fire feedback and start the lookup for one confirmed event.

        Must be called from inside the running event loop.

        Returns:
            The lookup task
        """
        logger.info(f"📦 Code confirmed: {event.value}")

        self._fire_feedback()
        self._present("show_detected", event.value)
        self._present("show_searching")

        task = asyncio.create_task(self._resolve(event.value), name=f"lookup-{event.value}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every in-flight lookup has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _fire_feedback(self) -> None:
        feedback = self._config.feedback
        if feedback.beep:
            try:
                self._feedback.beep()
            except Exception as e:
                logger.debug(f"Beep failed: {e}")
        if feedback.vibrate:
            try:
                self._feedback.vibrate(feedback.vibrate_ms)
            except Exception as e:
                logger.debug(f"Vibrate failed: {e}")

    def _present(self, hook: str, *args: Any) -> None:
        try:
            getattr(self._presenter, hook)(*args)
        except Exception:
            logger.exception(f"Presenter hook {hook} failed")

    async def _resolve(self, code: str) -> Optional[ProductRecord]:
        try:
            record = await self._lookup.lookup(code)
        except LookupFailure as e:
            logger.warning(f"Lookup failed for {code}: {e}")
            self._present("show_not_found", code)
            return None
        except Exception as e:
            logger.error(f"Unexpected lookup error for {code}: {e}")
            self._present("show_not_found", code)
            return None

        self._present("show_result", record)

        if self._config.auto_select and self._select_hook is not None:
            try:
                result = self._select_hook(record)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Select hook failed for {code}")

        return record
