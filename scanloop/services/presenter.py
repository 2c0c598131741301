"""
Presentation hooks called by the dispatcher.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol


# Module logger
logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def show_detected(self, code: str) -> None: ...

    def show_searching(self) -> None: ...

    def show_result(self, record: Mapping[str, Any]) -> None: ...

    def show_not_found(self, code: str) -> None: ...


class LoggingPresenter:
    """Presenter for headless runs: writes every hook call to the log."""

    def show_detected(self, code: str) -> None:
        logger.info(f"🔎 Code detected: {code}")

    def show_searching(self) -> None:
        logger.info("Searching product...")

    def show_result(self, record: Mapping[str, Any]) -> None:
        name = record.get("name", "<unnamed>")
        logger.info(f"✅ Product found: {name} ({record.get('upc', '?')})")

    def show_not_found(self, code: str) -> None:
        logger.info(f"❌ Product not found: {code}")


class PresenterGroup:
    """Forwards every hook call to each member presenter in order."""

    def __init__(self, *presenters: Presenter) -> None:
        self._presenters = list(presenters)

    def show_detected(self, code: str) -> None:
        for presenter in self._presenters:
            presenter.show_detected(code)

    def show_searching(self) -> None:
        for presenter in self._presenters:
            presenter.show_searching()

    def show_result(self, record: Mapping[str, Any]) -> None:
        for presenter in self._presenters:
            presenter.show_result(record)

    def show_not_found(self, code: str) -> None:
        for presenter in self._presenters:
            presenter.show_not_found(code)
