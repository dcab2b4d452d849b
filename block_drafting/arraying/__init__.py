"""Arraying core: placement planning, attribute numbering, orchestration."""

from block_drafting.arraying.attributes import AttributeField, resolve_attributes
from block_drafting.arraying.orchestrator import (
    PATH_END_TOLERANCE,
    ArrayResult,
    BlockTemplate,
    InstancePlan,
    run_array,
)
from block_drafting.arraying.planner import (
    CountMode,
    PlacementPolicy,
    SpacingMode,
    plan_placement,
)

__all__ = [
    "AttributeField",
    "resolve_attributes",
    "PATH_END_TOLERANCE",
    "ArrayResult",
    "BlockTemplate",
    "InstancePlan",
    "run_array",
    "CountMode",
    "PlacementPolicy",
    "SpacingMode",
    "plan_placement",
]
