"""DXF drawing access."""

from block_drafting.io.dxf_document import (
    BlockNotFound,
    DrawingDatabase,
    DrawingLoadError,
    DrawingTransaction,
    EntityNotFound,
)

__all__ = [
    "BlockNotFound",
    "DrawingDatabase",
    "DrawingLoadError",
    "DrawingTransaction",
    "EntityNotFound",
]
