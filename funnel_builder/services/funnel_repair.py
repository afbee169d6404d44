"""Deterministic validation and repair of funnel structures.

The pass never calls an AI service, never removes steps and never
rewrites step content.  It only injects a default lead-capture step into
an empty funnel or renumbers step orders to ``1..N``.
"""

import logging
from typing import Any, Dict, List

from funnel_builder.core.exceptions import UnrecoverableFunnelError
from funnel_builder.schemas.common import StepType
from funnel_builder.schemas.funnel import FunnelStep, FunnelStructure, RepairResult

logger = logging.getLogger(__name__)


def build_default_step(funnel: FunnelStructure) -> FunnelStep:
    """Return the minimal lead-capture step used to complete an empty funnel."""
    subject = funnel.name or "your project"
    fields: List[Dict[str, Any]] = [
        {
            "id": "name",
            "type": "text",
            "label": "Full name",
            "required": True,
            "placeholder": "Your full name",
        },
        {
            "id": "email",
            "type": "email",
            "label": "Email",
            "required": True,
            "placeholder": "Your email address",
        },
    ]
    return FunnelStep(
        order=1,
        type=StepType.lead_capture,
        title="Get in touch",
        description=f"Leave your details to hear more about {subject}",
        fields_config=fields,
        settings={"submitButtonText": "Send"},
    )


def has_contiguous_order(steps: List[FunnelStep]) -> bool:
    """``True`` when step orders read exactly ``1, 2, ..., N`` in list order."""
    return [step.order for step in steps] == list(range(1, len(steps) + 1))


def validate_and_repair(funnel: FunnelStructure) -> RepairResult:
    """Detect an incomplete or mis-numbered funnel and repair it once.

    Returns ``RepairResult(repaired=False)`` with the very same object
    for a funnel that already satisfies every invariant, so running the
    pass twice has no further effect.

    Raises:
        UnrecoverableFunnelError: If *funnel* is not a funnel structure.
    """
    if not isinstance(funnel, FunnelStructure):
        raise UnrecoverableFunnelError(
            f"Expected a funnel structure, got {type(funnel).__name__}"
        )

    steps = list(funnel.steps)

    if not steps:
        logger.info("Funnel %s has no steps; injecting default step", funnel.id)
        repaired = funnel.model_copy(update={"steps": [build_default_step(funnel)]})
        return RepairResult(repaired=True, funnel=repaired)

    if has_contiguous_order(steps):
        return RepairResult(repaired=False, funnel=funnel)

    # sorted() is stable: steps sharing an order keep their list position
    ordered = sorted(steps, key=lambda step: step.order)
    renumbered = [
        step.model_copy(update={"order": position})
        for position, step in enumerate(ordered, start=1)
    ]
    logger.info(
        "Funnel %s step orders %s renumbered to 1..%d",
        funnel.id,
        [step.order for step in steps],
        len(renumbered),
    )
    return RepairResult(
        repaired=True, funnel=funnel.model_copy(update={"steps": renumbered})
    )
