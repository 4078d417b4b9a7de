"""
Confidence bands

Maps a suggestion's confidence to the action the caller should take:

    confidence > 0.7          -> AUTO_APPLY  (apply / one-click "apply suggestion")
    0.4 < confidence <= 0.7   -> CONFIRM     (ask before applying and before learning)
    confidence <= 0.4         -> IGNORE      (surface nothing)

The engine never acts on a band itself; callers decide what to do with it.
"""
from enum import Enum

AUTO_APPLY_THRESHOLD = 0.7
CONFIRM_THRESHOLD = 0.4


class Band(str, Enum):
    """Caller-facing action for a suggestion"""
    AUTO_APPLY = 'auto_apply'
    CONFIRM = 'confirm'
    IGNORE = 'ignore'


def classify_band(confidence: float) -> Band:
    """
    Place a confidence value in its band

    Both thresholds are exclusive lower bounds, so 0.7 is CONFIRM and
    0.4 is IGNORE.
    """
    if confidence > AUTO_APPLY_THRESHOLD:
        return Band.AUTO_APPLY
    if confidence > CONFIRM_THRESHOLD:
        return Band.CONFIRM
    return Band.IGNORE
