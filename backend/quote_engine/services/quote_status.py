"""Quote status workflow.

draft -> negotiating -> awaiting_approval -> confirmed, with two escape
hatches: any live quote can be archived or sent back to draft. Archived
quotes are final.
"""

import logging

from quote_engine.exceptions import InvalidStatusTransitionError
from quote_engine.models import QuoteStatus

logger = logging.getLogger(__name__)

_FORWARD = {
    QuoteStatus.draft: QuoteStatus.negotiating,
    QuoteStatus.negotiating: QuoteStatus.awaiting_approval,
    QuoteStatus.awaiting_approval: QuoteStatus.confirmed,
}


def can_transition_status(current: QuoteStatus, requested: QuoteStatus) -> bool:
    current = QuoteStatus(current)
    requested = QuoteStatus(requested)
    if current == requested:
        return True
    if current == QuoteStatus.archived:
        return False
    if requested in (QuoteStatus.archived, QuoteStatus.draft):
        return True
    return _FORWARD.get(current) == requested


def transition_status(current: QuoteStatus, requested: QuoteStatus) -> QuoteStatus:
    """Validate a status change and return the new status.

    Raises:
        InvalidStatusTransitionError: If the workflow does not allow it.
    """
    if not can_transition_status(current, requested):
        raise InvalidStatusTransitionError(QuoteStatus(current).value, QuoteStatus(requested).value)
    logger.debug(f"Quote status {QuoteStatus(current).value} -> {QuoteStatus(requested).value}")
    return QuoteStatus(requested)
