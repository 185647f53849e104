"""Device-side scan to feedback pipeline."""

from .feedback import FeedbackAction, FeedbackDispatcher, FeedbackKind, OutputController
from .identity import IdentityResolver, canonical_card_id, normalize_card_id
from .requester import ActionRequester
from .scan_loop import ScanLoopController, ScanState

__all__ = [
    "ActionRequester",
    "FeedbackAction",
    "FeedbackDispatcher",
    "FeedbackKind",
    "IdentityResolver",
    "OutputController",
    "ScanLoopController",
    "ScanState",
    "canonical_card_id",
    "normalize_card_id",
]
