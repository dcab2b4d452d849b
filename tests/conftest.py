"""
Pytest configuration and fixtures for block_drafting.

Provides:
- In-memory drawings with a block definition and path entities
- Saved DXF files for CLI tests
- Common assertion helpers
"""

from pathlib import Path
from typing import Dict, List

import numpy as np
import pytest

from block_drafting.io.dxf_document import DrawingDatabase

PROJECT_ROOT = Path(__file__).parent.parent

# ATTDEF flag for constant attributes
ATTDEF_CONST = 2


# ============================================================================
# Drawing Fixtures
# ============================================================================

def _define_bolt_block(db: DrawingDatabase) -> None:
    """BOLT: 4 x 2 rectangle from the origin (center (2, 1)) with three ATTDEFs."""
    block = db.doc.blocks.new("BOLT")
    block.add_lwpolyline([(0, 0), (4, 0), (4, 2), (0, 2)], close=True)
    block.add_attdef("PARTNUM", (0.5, 0.5), text="XX", dxfattribs={'height': 0.5})
    block.add_attdef("LABEL", (0.5, 1.2), text="Bolt M8", dxfattribs={'height': 0.5})
    block.add_attdef(
        "MAKER", (0.5, 1.8), text="ACME",
        dxfattribs={'height': 0.5, 'flags': ATTDEF_CONST},
    )


@pytest.fixture
def empty_db() -> DrawingDatabase:
    """New drawing without blocks or entities."""
    return DrawingDatabase.new()


@pytest.fixture
def drawing() -> DrawingDatabase:
    """Drawing with the BOLT block, an EMPTY block and a few path entities."""
    db = DrawingDatabase.new()
    _define_bolt_block(db)
    db.doc.blocks.new("EMPTY")
    return db


@pytest.fixture
def handles(drawing: DrawingDatabase) -> Dict[str, str]:
    """Handles of the path entities added to ``drawing``."""
    msp = drawing.msp
    return {
        "line100": msp.add_line((0, 0), (100, 0)).dxf.handle,
        "line24": msp.add_line((10, 10), (34, 10)).dxf.handle,
        "diagonal": msp.add_line((0, 0), (30, 30)).dxf.handle,
        "point_line": msp.add_line((5, 5), (5, 5)).dxf.handle,
        "lwpolyline": msp.add_lwpolyline([(0, 0), (30, 0), (30, 40)]).dxf.handle,
        "arc_polyline": msp.add_lwpolyline([(0, 0, 1.0), (2, 0, 0.0)], format='xyb').dxf.handle,
        "polyline3d": msp.add_polyline3d([(0, 0, 0), (0, 0, 10), (0, 10, 10)]).dxf.handle,
        "circle": msp.add_circle((0, 0), 5).dxf.handle,
    }


@pytest.fixture
def drawing_file(tmp_path: Path, drawing: DrawingDatabase, handles: Dict[str, str]) -> Path:
    """``drawing`` saved to disk."""
    path = tmp_path / "plan.dxf"
    drawing.save(path)
    return path


# ============================================================================
# Assertion Helpers
# ============================================================================

def assert_point_close(actual, expected, tol: float = 1e-9) -> None:
    """Compare two 2D/3D points component-wise."""
    a = np.asarray(tuple(actual), dtype=np.float64)
    e = np.asarray(tuple(expected), dtype=np.float64)
    if a.shape[0] == 2:
        a = np.append(a, 0.0)
    if e.shape[0] == 2:
        e = np.append(e, 0.0)
    assert np.allclose(a, e, atol=tol), f"{a} != {e}"


def instance_distances(result, path) -> List[float]:
    """Distance from the path start of every planned insert point."""
    return [
        float(np.linalg.norm(plan.insert_point - path.start))
        for plan in result.plans
    ]
