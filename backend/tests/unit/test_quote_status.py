"""Tests for the quote status workflow."""

import pytest

from quote_engine.exceptions import InvalidStatusTransitionError
from quote_engine.models import QuoteStatus
from quote_engine.services.quote_status import can_transition_status, transition_status


class TestQuoteStatus:
    @pytest.mark.parametrize(
        "current,requested",
        [
            (QuoteStatus.draft, QuoteStatus.negotiating),
            (QuoteStatus.negotiating, QuoteStatus.awaiting_approval),
            (QuoteStatus.awaiting_approval, QuoteStatus.confirmed),
            (QuoteStatus.confirmed, QuoteStatus.archived),
            (QuoteStatus.negotiating, QuoteStatus.draft),
            (QuoteStatus.draft, QuoteStatus.draft),
        ],
    )
    def test_allowed(self, current, requested):
        assert can_transition_status(current, requested)
        assert transition_status(current, requested) == requested

    @pytest.mark.parametrize(
        "current,requested",
        [
            (QuoteStatus.draft, QuoteStatus.confirmed),
            (QuoteStatus.draft, QuoteStatus.awaiting_approval),
            (QuoteStatus.confirmed, QuoteStatus.negotiating),
            (QuoteStatus.archived, QuoteStatus.draft),
        ],
    )
    def test_rejected(self, current, requested):
        assert not can_transition_status(current, requested)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            transition_status(current, requested)
        assert exc_info.value.current == current.value
        assert exc_info.value.requested == requested.value

    def test_accepts_strings(self):
        assert transition_status("draft", "negotiating") == QuoteStatus.negotiating
