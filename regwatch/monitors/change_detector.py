from enum import Enum
from typing import Optional

from ..database.models import Snapshot, FETCH_ERROR


class ChangeDecision(Enum):
    """Outcome of comparing a new fingerprint with the previous snapshot."""
    FIRST_OBSERVATION = "first_observation"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @property
    def is_change(self) -> bool:
        return self is not ChangeDecision.UNCHANGED


def detect_change(last_snapshot: Optional[Snapshot], new_fingerprint: str) -> ChangeDecision:
    """
    Decide whether new content warrants analysis.

    An error snapshot carries no fingerprint, so it is treated the same as
    having no prior snapshot at all.
    """
    if last_snapshot is None or last_snapshot.fetch_status == FETCH_ERROR:
        return ChangeDecision.FIRST_OBSERVATION
    if last_snapshot.content_hash == new_fingerprint:
        return ChangeDecision.UNCHANGED
    return ChangeDecision.CHANGED
