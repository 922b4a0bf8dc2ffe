"""
Prediction outcome evaluation.

Exact equality with the line is a push; there is no tolerance.
"""
from propsettle.models import RESULT_CORRECT, RESULT_INCORRECT, RESULT_PUSH

OVER = "over"
UNDER = "under"


def evaluate(direction: str, threshold: float, actual: float) -> str:
    """
    Judge a prediction against the actual value.

    Args:
        direction: 'over' or 'under' (case-insensitive)
        threshold: The line
        actual: The value the player posted

    Returns:
        'correct', 'incorrect' or 'push'

    Raises:
        ValueError: for any other direction

    Examples:
        >>> evaluate("over", 24.5, 27)
        'correct'
        >>> evaluate("under", 2, 2)
        'push'
    """
    side = (direction or "").strip().lower()
    if side not in (OVER, UNDER):
        raise ValueError(f"Unknown prediction direction: {direction!r}")

    if actual == threshold:
        return RESULT_PUSH
    if side == OVER:
        return RESULT_CORRECT if actual > threshold else RESULT_INCORRECT
    return RESULT_CORRECT if actual < threshold else RESULT_INCORRECT


def format_value(value: float) -> str:
    """Render 27.0 as '27' and 24.5 as '24.5'."""
    return f"{value:g}"


def completion_note(direction: str, threshold: float, actual: float, prefix: str = "Auto-validated") -> str:
    """Human-readable settlement note, e.g. 'Auto-validated: OVER 24.5 → Actual: 27'."""
    return f"{prefix}: {direction.upper()} {format_value(threshold)} → Actual: {format_value(actual)}"
