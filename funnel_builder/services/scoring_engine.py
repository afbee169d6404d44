"""Rule evaluator and lead scoring engine.

``compute_score`` is a pure function: it reads a rule set and a lead's
attributes and returns the total plus a per-rule breakdown.  Nothing is
persisted here; :class:`~funnel_builder.services.lead_scoring.LeadScoringService`
owns I/O.

Dispatch is closed over :class:`RuleType` and :class:`ConditionOperator`.
Adding a member to either enum without registering a handler below makes
this module fail at import time.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, Optional

from funnel_builder.core.exceptions import InvalidInputError
from funnel_builder.schemas.common import ConditionOperator, RuleType
from funnel_builder.schemas.scoring import LeadAttributes, RuleOutcome, ScoreResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Attribute selection — one extractor per rule type
# ---------------------------------------------------------------------------


def _response_time(lead: LeadAttributes) -> Optional[Any]:
    return lead.response_time_minutes


def _message_length(lead: LeadAttributes) -> Optional[Any]:
    return lead.message_length


def _source(lead: LeadAttributes) -> Optional[Any]:
    return lead.source or None


def _tone(lead: LeadAttributes) -> Optional[Any]:
    # An explicit tone label wins; otherwise match against the free text.
    return lead.tone or lead.message or None


_ATTRIBUTE_EXTRACTORS: Dict[RuleType, Callable[[LeadAttributes], Optional[Any]]] = {
    RuleType.response_time: _response_time,
    RuleType.message_length: _message_length,
    RuleType.source: _source,
    RuleType.tone: _tone,
}


# ---------------------------------------------------------------------------
# Condition operators
# ---------------------------------------------------------------------------


def _to_number(value: Any) -> Optional[float]:
    """Coerce to a finite float, or ``None`` when that is impossible."""
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).casefold()


def _less_than(attribute: Any, operand: str) -> bool:
    left, right = _to_number(attribute), _to_number(operand)
    if left is None or right is None:
        return False
    return left < right


def _greater_than(attribute: Any, operand: str) -> bool:
    left, right = _to_number(attribute), _to_number(operand)
    if left is None or right is None:
        return False
    return left > right


def _equals(attribute: Any, operand: str) -> bool:
    return _to_text(attribute) == _to_text(operand)


def _contains(attribute: Any, operand: str) -> bool:
    return _to_text(operand) in _to_text(attribute)


_OPERATORS: Dict[ConditionOperator, Callable[[Any, str], bool]] = {
    ConditionOperator.less_than: _less_than,
    ConditionOperator.greater_than: _greater_than,
    ConditionOperator.equals: _equals,
    ConditionOperator.contains: _contains,
}


def _assert_exhaustive() -> None:
    missing_types = set(RuleType) - set(_ATTRIBUTE_EXTRACTORS)
    missing_ops = set(ConditionOperator) - set(_OPERATORS)
    if missing_types or missing_ops:
        raise RuntimeError(
            "Scoring dispatch is incomplete: "
            f"rule types {sorted(t.value for t in missing_types)}, "
            f"operators {sorted(o.value for o in missing_ops)}"
        )


_assert_exhaustive()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate_rule(rule: Any, lead: LeadAttributes) -> bool:
    """Return ``True`` when *rule*'s condition holds for *lead*.

    Never raises for a malformed rule: unknown rule types or operators,
    a missing attribute and a non-numeric operand all mean "does not
    apply".
    """
    try:
        rule_type = RuleType(getattr(rule, "rule_type", None))
        operator = ConditionOperator(getattr(rule, "condition_operator", None))
    except ValueError:
        logger.debug("Skipping rule %r with unknown type/operator", getattr(rule, "name", None))
        return False

    attribute = _ATTRIBUTE_EXTRACTORS[rule_type](lead)
    if attribute is None:
        return False

    operand = getattr(rule, "condition_value", None)
    if operand is None:
        return False

    return _OPERATORS[operator](attribute, str(operand))


def _to_points(value: Any) -> Optional[int]:
    """Coerce a rule's points to ``int``, or ``None`` when malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def compute_score(rules: Iterable[Any], lead: LeadAttributes) -> ScoreResult:
    """Score *lead* against every active rule in *rules*.

    Each active rule yields exactly one breakdown entry keyed by its
    name; a later rule with the same name overwrites the earlier entry
    while its points still count towards the running total.  A rule
    whose points are not an integer never applies; a rule without a
    usable name is skipped.

    Raises:
        InvalidInputError: If *rules* is not an iterable of rules.
    """
    if rules is None or isinstance(rules, (str, bytes, Mapping)) or not isinstance(
        rules, Iterable
    ):
        raise InvalidInputError(
            f"Scoring rules must be an iterable of rules, got {type(rules).__name__}"
        )

    total = 0
    breakdown: Dict[str, RuleOutcome] = {}

    for rule in rules:
        if not getattr(rule, "is_active", False):
            continue

        name = getattr(rule, "name", None)
        if not isinstance(name, str) or not name:
            logger.debug("Skipping active rule without a name: %r", rule)
            continue

        raw_type = getattr(rule, "rule_type", "")
        rule_type = raw_type.value if isinstance(raw_type, RuleType) else str(raw_type)
        points = _to_points(getattr(rule, "points", None))
        if points is None:
            logger.debug("Rule %r has non-integer points; not applied", name)

        if points is not None and evaluate_rule(rule, lead):
            total += points
            breakdown[name] = RuleOutcome(applies=True, points=points, rule_type=rule_type)
        else:
            breakdown[name] = RuleOutcome(applies=False, points=0, rule_type=rule_type)

    return ScoreResult(total_score=total, breakdown=breakdown)
