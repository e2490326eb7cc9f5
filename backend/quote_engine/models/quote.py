"""Quote-level enums shared by the builder and the version store."""

from enum import Enum


class QuoteMode(str, Enum):
    """How a quote is priced.

    Retainer quotes have no hour pool; budget quotes are capped by one.
    """

    retainer = "retainer"
    budget = "budget"


class QuoteStatus(str, Enum):
    """Workflow status of a quote."""

    draft = "draft"
    negotiating = "negotiating"
    awaiting_approval = "awaiting_approval"
    confirmed = "confirmed"
    archived = "archived"
