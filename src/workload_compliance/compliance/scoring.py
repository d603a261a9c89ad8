"""Scoring and threshold policy.

Every rule counts equally: the score is the number of passing rules and the
verdict compares score / total against the threshold. An evaluation with no
rules passes.
"""

import math
import numbers

from workload_compliance.errors import InvalidThresholdError

DEFAULT_THRESHOLD = 0.8


def validate_threshold(threshold: float) -> float:
    """Validate a compliance threshold.

    Args:
        threshold: Minimum passing ratio.

    Returns:
        The threshold as a float.

    Raises:
        InvalidThresholdError: If the value is not a real number in [0, 1].
    """
    if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real):
        raise InvalidThresholdError(threshold)
    value = float(threshold)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidThresholdError(threshold)
    return value


def compliance_ratio(score: int, total: int) -> float:
    """Return score / total, or 1.0 when no rules were evaluated."""
    if total == 0:
        return 1.0
    return score / total


def is_passing(score: int, total: int, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """Return the overall verdict for a score.

    Args:
        score: Number of passing rules.
        total: Number of evaluated rules.
        threshold: Minimum passing ratio.

    Returns:
        True when total is zero or score / total >= threshold.
    """
    if total == 0:
        return True
    return score / total >= threshold
