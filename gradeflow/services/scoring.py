"""Pure scoring rules: answer normalisation, correctness and percentages.

Nothing here touches the store, so the ORM models can use these helpers for
their derived properties.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal

from gradeflow.models.enums import QuestionType

_WS_RE = re.compile(r"\s+")


def normalize_answer(value):
    """Normalise a raw answer for comparison.

    - strings: trimmed, inner whitespace collapsed, case-folded
    - booleans: ``"true"`` / ``"false"``
    - numbers: their string form, ``2.0`` becomes ``"2"``
    - lists/tuples/sets: frozenset of normalised members
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(normalize_answer(v) for v in value if not is_blank(v))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return _WS_RE.sub(" ", str(value).strip()).casefold()


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return all(is_blank(v) for v in value)
    return False


def _resolve_choice(question: dict, value):
    # a multiple-choice key may be stored as an index into ``options``
    options = question.get("options") or []
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < len(options):
        return options[value]
    if isinstance(value, (list, tuple)):
        return [_resolve_choice(question, v) for v in value]
    return value


def check_answer(question: dict, answer) -> bool | None:
    """Correctness of one answer; ``None`` when it cannot be decided automatically."""
    qtype = QuestionType(question["type"])
    if not qtype.auto_gradable:
        return None

    correct = question.get("correct_answer")
    if is_blank(correct):
        return None
    if is_blank(answer):
        return False

    if qtype is QuestionType.MULTIPLE_CHOICE:
        correct = _resolve_choice(question, correct)
        answer = _resolve_choice(question, answer)

    expected = normalize_answer(correct)
    given = normalize_answer(answer)
    if isinstance(expected, frozenset) or isinstance(given, frozenset):
        expected = _as_set(expected)
        given = _as_set(given)
    return expected == given


def _as_set(value) -> frozenset:
    return value if isinstance(value, frozenset) else frozenset({value})


def compute_percentage(score: float, total_points: float) -> int:
    """round(score / total * 100), half rounded up; 0 when there are no points."""
    if not total_points:
        return 0
    ratio = Decimal(str(score)) / Decimal(str(total_points)) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_passed(percentage: int, passing_score: float) -> bool:
    return percentage >= passing_score


def coerce_score(value) -> float | None:
    """Return ``value`` as a finite float, or ``None`` if it is not a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value
