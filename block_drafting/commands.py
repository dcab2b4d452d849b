"""
Drafting commands: measure a line, label block references, array a block
along a path.

Each command validates its inputs, copies what it needs out of the drawing,
and performs all of its writes inside a single drawing transaction. Commands
return a result object with the user-facing messages; printing them is left
to the caller.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ezdxf.entities import Insert, Line
from ezdxf.math import Vec3

from block_drafting.arraying.orchestrator import ArrayResult, run_array
from block_drafting.arraying.planner import CountMode, PlacementPolicy
from block_drafting.geometry.path import UnsupportedGeometry, sample_path
from block_drafting.geometry.transform import RotationPolicy
from block_drafting.io.dxf_document import (
    DEFAULT_TEXT_STYLE,
    LABEL_COLOR,
    DrawingDatabase,
)
from block_drafting.logging_config import log_timing

logger = logging.getLogger(__name__)


@dataclass
class MeasureResult:
    length: float
    message: str


@dataclass
class LabelResult:
    prefix: str
    labels_created: int
    messages: List[str] = field(default_factory=list)


@dataclass
class ArrayCommandResult:
    block_name: str
    array: ArrayResult
    messages: List[str] = field(default_factory=list)

    @property
    def blocks_created(self) -> int:
        return self.array.blocks_created

    @property
    def blocks_planned(self) -> int:
        return self.array.blocks_planned


def measure_line(db: DrawingDatabase, handle: str, precision: int = 2) -> MeasureResult:
    """Length of the LINE entity ``handle``.

    Raises:
        EntityNotFound: no entity with this handle
        UnsupportedGeometry: the entity is not a LINE
    """
    entity = db.get_entity(handle)
    if not isinstance(entity, Line):
        raise UnsupportedGeometry("Only lines allowed.")

    length = sample_path(db.path_geometry(entity)).length
    message = f"Length: {length:.{precision}f} units"
    logger.info("%s", message, extra={"handle": entity.dxf.handle})
    return MeasureResult(length=length, message=message)


def add_labels_to_blocks(
    db: DrawingDatabase,
    references: Iterable[Insert],
    prefix: str,
    text_height: float = 10.0,
    offset_factor: float = 1.5,
    color: int = LABEL_COLOR,
    style: str = DEFAULT_TEXT_STYLE,
) -> LabelResult:
    """Stamp ``<prefix><n>`` above each block reference, n counting from 1.

    Labels go ``offset_factor * text_height`` above the reference's insert
    point, on the reference's layer.

    Raises:
        ValueError: text height not a positive finite number, or a prefix with spaces
    """
    if not text_height > 0 or not math.isfinite(text_height):
        raise ValueError(f"Text height must be a positive finite number, got {text_height}")
    if any(ch.isspace() for ch in prefix):
        raise ValueError(f"Label prefix must not contain spaces: {prefix!r}")

    offset = Vec3(0, text_height * offset_factor, 0)
    number = 1
    with log_timing(logger, "Stamping labels", prefix=prefix):
        with db.transaction():
            for ref in references:
                if not isinstance(ref, Insert):
                    continue
                db.append_label(
                    ref.dxf.insert + offset,
                    f"{prefix}{number}",
                    text_height,
                    layer=ref.dxf.layer,
                    color=color,
                    style=style,
                )
                number += 1

    created = number - 1
    message = f"Added labels with prefix '{prefix}' to {created} blocks."
    logger.info("%s", message)
    return LabelResult(prefix=prefix, labels_created=created, messages=[message])


def array_blocks_on_path(
    db: DrawingDatabase,
    path_handle: str,
    block_name: str,
    policy: PlacementPolicy,
    scale: float = 1.0,
    align_with_path: bool = True,
    layer: Optional[str] = None,
) -> ArrayCommandResult:
    """Place copies of ``block_name`` along the line or polyline ``path_handle``.

    The block and the path are resolved before anything is written; the
    instances and their attributes are then added in one transaction.

    Raises:
        ValueError: empty block name, or a scale that is not a positive finite number
        BlockNotFound: the drawing has no such block
        EntityNotFound: no entity with ``path_handle``
        UnsupportedGeometry: the entity is not a line or polyline
    """
    if not block_name or any(ch.isspace() for ch in block_name):
        raise ValueError(f"Invalid block name: {block_name!r}")
    if not scale > 0 or not math.isfinite(scale):
        raise ValueError(f"Scale factor must be a positive finite number, got {scale}")

    template = db.resolve_block(block_name)
    path = sample_path(db.path_geometry(db.get_entity(path_handle)))
    rotation_policy = RotationPolicy.from_flag(align_with_path)

    with log_timing(logger, "Arraying blocks", block=template.name) as info:
        result = run_array(path, policy, template, rotation_policy, scale)

        with db.transaction():
            for plan in result.plans:
                insert = db.append_instance(plan.transform, template, layer=layer)
                for tag, text in plan.resolved_attributes.items():
                    db.append_attribute(insert, tag, text)
        info['blocks_created'] = result.blocks_created

    messages = [f"Created {result.blocks_created} '{block_name}' blocks on the line."]
    logger.info("%s", messages[0])
    if isinstance(policy, CountMode) and result.blocks_created < policy.count:
        note = f"Note: Only {result.blocks_created} blocks fit on the line."
        logger.warning("%s", note, extra={"requested": policy.count})
        messages.append(note)

    return ArrayCommandResult(block_name=template.name, array=result, messages=messages)
