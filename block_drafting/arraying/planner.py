"""
Placement planning: how many instances go on a path and how far apart.

Both modes use fencepost placement. The first instance sits on the path start
and the rest follow at a fixed spacing, so N instances span N - 1 gaps.
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountMode:
    """Place exactly ``count`` instances spread over the whole path."""
    count: int

    def __post_init__(self):
        if self.count <= 0:
            raise ValueError(f"Count must be positive, got {self.count}")


@dataclass(frozen=True)
class SpacingMode:
    """Place instances every ``spacing`` units from the path start."""
    spacing: float

    def __post_init__(self):
        if not self.spacing > 0:
            raise ValueError(f"Spacing must be positive, got {self.spacing}")


PlacementPolicy = Union[CountMode, SpacingMode]


def plan_placement(length: float, policy: PlacementPolicy) -> Tuple[int, float]:
    """Number of instances to plan and the spacing between them.

    Args:
        length: path length
        policy: CountMode or SpacingMode

    Returns:
        (num_blocks_planned, spacing). A single planned block has spacing 0.
    """
    if isinstance(policy, CountMode):
        num_blocks = policy.count
        spacing = length / (num_blocks - 1) if num_blocks > 1 else 0.0
    else:
        num_blocks = int(math.floor(length / policy.spacing)) + 1
        spacing = float(policy.spacing)

    logger.debug(
        "Planned %d instance(s) at spacing %.6g over length %.6g",
        num_blocks, spacing, length,
    )
    return num_blocks, spacing
