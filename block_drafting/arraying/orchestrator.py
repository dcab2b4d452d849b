"""
Block arraying along a path.

run_array() plans the instances once, then walks them in index order:
compose the placement transform, stop as soon as a point falls past the end of
the path, resolve the attribute text. The result is a plain list of
InstancePlan records; nothing is written to a drawing here.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np
from numpy.typing import NDArray

from block_drafting.arraying.attributes import AttributeField, resolve_attributes
from block_drafting.arraying.planner import PlacementPolicy, plan_placement
from block_drafting.geometry.path import SampledPath, as_point3
from block_drafting.geometry.transform import (
    PlacementTransform,
    RotationPolicy,
    compose_transform,
)

logger = logging.getLogger(__name__)

# Points may overshoot the path end by this much (drawing units)
PATH_END_TOLERANCE = 0.001


@dataclass(eq=False)
class BlockTemplate:
    """Read-only copy of a block definition.

    Attributes:
        name: block name
        center_offset: bounding-box center relative to the block base point,
            zero vector when the block has no computable extents
        attribute_fields: ATTDEFs of the block, in definition order
    """
    name: str
    center_offset: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    attribute_fields: Tuple[AttributeField, ...] = ()

    def __post_init__(self):
        self.center_offset = as_point3(self.center_offset)
        self.attribute_fields = tuple(self.attribute_fields)


@dataclass(eq=False)
class InstancePlan:
    """One block instance to be written to the drawing."""
    index: int
    transform: PlacementTransform
    resolved_attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def insert_point(self) -> NDArray[np.float64]:
        return self.transform.insert_point

    @property
    def rotation(self) -> float:
        return self.transform.rotation

    @property
    def scale(self) -> float:
        return self.transform.scale

    @property
    def ordinal(self) -> int:
        return self.index + 1


@dataclass(eq=False)
class ArrayResult:
    """Outcome of one arraying run."""
    plans: List[InstancePlan]
    blocks_planned: int
    spacing: float

    @property
    def blocks_created(self) -> int:
        return len(self.plans)

    @property
    def shortfall(self) -> int:
        return self.blocks_planned - self.blocks_created

    @property
    def is_short(self) -> bool:
        return self.shortfall > 0


def run_array(
    path: SampledPath,
    policy: PlacementPolicy,
    template: BlockTemplate,
    rotation_policy: RotationPolicy = RotationPolicy.ALIGN_TO_PATH,
    scale: float = 1.0,
) -> ArrayResult:
    """Plan every instance of ``template`` along ``path``.

    Emission stops without error at the first point farther than
    ``path.length + PATH_END_TOLERANCE`` from the start, so fewer instances
    than planned may come back. A zero-length path yields a single instance
    on its start point.

    Args:
        path: sampled path
        policy: CountMode or SpacingMode
        template: block to place
        rotation_policy: align to the path or keep angle 0
        scale: uniform scale factor

    Returns:
        ArrayResult with the emitted plans and the planned count
    """
    blocks_planned, spacing = plan_placement(path.length, policy)
    limit = path.length + PATH_END_TOLERANCE

    plans: List[InstancePlan] = []
    for i in range(blocks_planned):
        transform = compose_transform(
            path, template.center_offset, i, spacing, rotation_policy, scale
        )
        distance = float(np.linalg.norm(transform.insert_point - path.start))
        if distance > limit:
            logger.debug(
                "Instance %d at distance %.6g is past the path end (%.6g)",
                i, distance, path.length,
            )
            break

        plans.append(InstancePlan(
            index=i,
            transform=transform,
            resolved_attributes=resolve_attributes(template.attribute_fields, i + 1),
        ))

        if path.length == 0.0:
            break

    logger.debug(
        "Arrayed '%s': %d of %d instance(s)",
        template.name, len(plans), blocks_planned,
    )
    return ArrayResult(
        plans=plans,
        blocks_planned=blocks_planned,
        spacing=spacing,
    )

