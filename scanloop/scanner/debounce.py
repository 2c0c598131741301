"""
==============================================================================
Debounce Filter Module
==============================================================================

Decides which decode candidates are new events.

Rule:
-----
    accept = value != last_confirmed_value
             or now - last_confirmed_at > duplicate_suppression_ms

A code held in front of the camera therefore confirms once, and again only
after the suppression window has elapsed. A different code always confirms
immediately. Values are compared byte for byte.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from scanloop.scanner.models import ConfirmedEvent, DecodeCandidate, ScanState


# Module logger
logger = logging.getLogger(__name__)


class DebounceFilter:
    """
    Stateless rule applied to the controller's ScanState.

    The filter reads and writes state within one synchronous call, so two
    ticks can never interleave on it.

    Example:
        >>> state = ScanState()
        >>> f = DebounceFilter(duplicate_suppression_ms=2000)
        >>> f.evaluate(state, candidate_a, now=0).value
        'A'
        >>> f.evaluate(state, candidate_a, now=100) is None
        True
    """

    def __init__(self, duplicate_suppression_ms: int) -> None:
        if duplicate_suppression_ms < 0:
            raise ValueError("duplicate_suppression_ms must be >= 0")
        self._window = duplicate_suppression_ms

    @property
    def window_ms(self) -> int:
        return self._window

    def evaluate(
        self,
        state: ScanState,
        candidate: Optional[DecodeCandidate],
        now: float
    ) -> Optional[ConfirmedEvent]:
        """
        Apply the rule to this tick's candidate.

        Args:
            state: Run state, updated in place
            candidate: Candidate of this tick, or None
            now: Current time in ms

        Returns:
            ConfirmedEvent when accepted, otherwise None
        """
        if candidate is None:
            return None

        # Suppressed duplicates still count as activity for the idle watchdog
        state.last_activity_at = now

        accept = (
            candidate.value != state.last_confirmed_value
            or now - state.last_confirmed_at > self._window
        )
        if not accept:
            logger.debug(f"Duplicate suppressed: {candidate.value}")
            return None

        state.last_confirmed_value = candidate.value
        state.last_confirmed_at = now
        state.confirmed_count += 1
        return ConfirmedEvent(value=candidate.value, confirmed_at=now)
