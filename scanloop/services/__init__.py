"""
==============================================================================
Services Package - Side Effects of a Confirmed Code
==============================================================================

This package provides:
- NotificationDispatcher: feedback + lookup + presentation per event
- ProductLookupClient: httpx client for the lookup service
- TerminalFeedback: bell-based feedback device
- LoggingPresenter: presenter for headless runs
- PresenterGroup / FeedbackGroup: fan-out to several sinks

==============================================================================
"""

from .dispatcher import NotificationDispatcher
from .feedback import FeedbackDevice, FeedbackGroup, TerminalFeedback
from .lookup_client import ProductLookupClient, ProductRecord
from .presenter import LoggingPresenter, Presenter, PresenterGroup

__all__ = [
    "FeedbackDevice",
    "FeedbackGroup",
    "LoggingPresenter",
    "NotificationDispatcher",
    "Presenter",
    "PresenterGroup",
    "ProductLookupClient",
    "ProductRecord",
    "TerminalFeedback",
]
