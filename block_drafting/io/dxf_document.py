"""
DXF drawing access for the drafting commands.

Wraps an ezdxf document and exposes only what the commands need:
- reading path entities (LINE, LWPOLYLINE, POLYLINE) as path geometry values
- reading block definitions as BlockTemplate values
- appending block references, attributes and text labels
- grouping writes in a transaction that is undone if the batch fails

Nothing read from the document is handed out as a live entity to the arraying
core; paths and blocks are copied into plain values first.

Usage:
    from block_drafting.io.dxf_document import DrawingDatabase

    db = DrawingDatabase.open("site.dxf")
    template = db.resolve_block("BOLT")
    with db.transaction():
        insert = db.append_instance(plan.transform, template)
    db.save("site_out.dxf")
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import ezdxf
from ezdxf import bbox, units
from ezdxf.document import Drawing
from ezdxf.entities import Attrib, DXFGraphic, Insert, Line, LWPolyline, Polyline, Text

from block_drafting.arraying.attributes import AttributeField
from block_drafting.arraying.orchestrator import BlockTemplate
from block_drafting.geometry.path import (
    LineGeometry,
    PathGeometry,
    PolylineGeometry,
    UnsupportedGeometry,
)
from block_drafting.geometry.transform import PlacementTransform
from block_drafting.logging_config import timed

logger = logging.getLogger(__name__)

# ACI colour of stamped labels (green)
LABEL_COLOR = 3
DEFAULT_TEXT_STYLE = "Standard"

# ATTDEF properties that are not copied onto the ATTRIB
_ATTDEF_ONLY_KEYS = {"prompt", "handle", "owner", "tag", "text", "insert"}


class DrawingLoadError(Exception):
    """DXF file is missing or cannot be parsed."""


class EntityNotFound(Exception):
    """No entity with the requested handle."""


class BlockNotFound(Exception):
    """Block definition with the requested name does not exist."""


class DrawingTransaction:
    """Entities created during one batch of writes.

    commit() keeps them, rollback() deletes them from their layouts again.
    """

    def __init__(self, db: 'DrawingDatabase'):
        self.db = db
        self.created: List[DXFGraphic] = []
        self.active = True

    def track(self, entity: DXFGraphic) -> None:
        if self.active:
            self.created.append(entity)

    def commit(self) -> None:
        logger.debug("Committed %d new entities", len(self.created))
        self.created = []
        self.active = False

    def rollback(self) -> None:
        for entity in reversed(self.created):
            if entity.is_alive:
                layout = entity.get_layout()
                if layout is not None:
                    layout.delete_entity(entity)
        logger.info("Rolled back %d new entities", len(self.created))
        self.created = []
        self.active = False


class DrawingDatabase:
    """ezdxf document with the read/write operations used by the commands."""

    def __init__(self, doc: Drawing, path: Optional[Path] = None):
        self.doc = doc
        self.msp = doc.modelspace()
        self.path = path
        self._transaction: Optional[DrawingTransaction] = None

    @classmethod
    def open(cls, path: Union[str, Path]) -> 'DrawingDatabase':
        """Read a DXF file.

        Raises:
            DrawingLoadError: file missing or not a valid DXF
        """
        path = Path(path)
        try:
            doc = ezdxf.readfile(str(path))
        except IOError as exc:
            raise DrawingLoadError(f"Cannot read drawing {str(path)!r}: {exc}") from exc
        except ezdxf.DXFStructureError as exc:
            raise DrawingLoadError(f"Invalid DXF file {str(path)!r}: {exc}") from exc
        logger.info("Drawing loaded: %s", path)
        return cls(doc, path)

    @classmethod
    def new(cls, dxf_version: str = 'R2010') -> 'DrawingDatabase':
        """Create an empty drawing in millimetres."""
        return cls(ezdxf.new(dxf_version, units=units.MM))

    @timed()
    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the drawing to ``path`` (or back to the file it was read from)."""
        target = Path(path) if path is not None else self.path
        if target is None:
            raise RuntimeError("No output path given for a drawing that was never saved.")
        self.doc.saveas(str(target))
        self.path = target
        logger.info("DXF saved: %s", target)
        return target

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[DrawingTransaction]:
        """Group writes; any exception inside the block removes them again."""
        if self._transaction is not None:
            raise RuntimeError("A transaction is already open on this drawing.")
        tr = DrawingTransaction(self)
        self._transaction = tr
        try:
            yield tr
        except Exception:
            tr.rollback()
            raise
        else:
            if tr.active:
                tr.commit()
        finally:
            self._transaction = None

    def _track(self, entity: DXFGraphic) -> None:
        if self._transaction is not None:
            self._transaction.track(entity)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_entity(self, handle: str) -> DXFGraphic:
        """Entity by DXF handle (hex string, case-insensitive)."""
        entity = self.doc.entitydb.get(handle.upper())
        if entity is None or not entity.is_alive:
            raise EntityNotFound(f"No entity with handle {handle!r}")
        return entity

    def path_geometry(self, entity: DXFGraphic) -> PathGeometry:
        """Copy a LINE, LWPOLYLINE or 2D/3D POLYLINE into a path geometry value.

        Raises:
            UnsupportedGeometry: any other entity type
        """
        if isinstance(entity, Line):
            return LineGeometry(tuple(entity.dxf.start), tuple(entity.dxf.end))

        if isinstance(entity, LWPolyline):
            vertices = [tuple(v) for v in entity.vertices_in_wcs()]
            bulges = [b for (b,) in entity.get_points('b')]
            return PolylineGeometry(vertices, bulges, closed=entity.closed)

        if isinstance(entity, Polyline):
            if not (entity.is_2d_polyline or entity.is_3d_polyline):
                raise UnsupportedGeometry(
                    f"POLYLINE #{entity.dxf.handle} is a mesh, not a path"
                )
            vertices = [tuple(v) for v in entity.points_in_wcs()]
            bulges = [v.dxf.bulge for v in entity.vertices]
            return PolylineGeometry(vertices, bulges, closed=entity.is_closed)

        raise UnsupportedGeometry(
            f"{entity.dxftype()} #{entity.dxf.handle} is not a line or polyline"
        )

    def resolve_block(self, name: str) -> BlockTemplate:
        """Copy a block definition into a BlockTemplate.

        The center offset is the center of the block's extents (ATTDEFs
        excluded) relative to the block base point.

        Raises:
            BlockNotFound: no block with this name
        """
        block = self.doc.blocks.get(name)
        if block is None:
            raise BlockNotFound(f"Block '{name}' not found.")

        geometry = [e for e in block if e.dxftype() != 'ATTDEF']
        extents = bbox.extents(geometry)
        base_point = block.base_point
        if extents.has_data:
            center = extents.center - base_point
            center_offset = (center.x, center.y, center.z)
        else:
            center_offset = (0.0, 0.0, 0.0)

        fields = tuple(
            AttributeField(
                tag=attdef.dxf.tag,
                is_constant=attdef.is_const,
                default_text=attdef.dxf.get('text', ''),
            )
            for attdef in block.attdefs()
        )
        logger.debug(
            "Resolved block '%s': center offset %s, %d attribute(s)",
            name, center_offset, len(fields),
        )
        return BlockTemplate(
            name=block.name,
            center_offset=center_offset,
            attribute_fields=fields,
        )

    def block_references(
        self,
        block_name: Optional[str] = None,
        layer: Optional[str] = None,
    ) -> List[Insert]:
        """Block references in modelspace, in drawing order.

        Args:
            block_name: only references to this block (case-insensitive)
            layer: only references on this layer (case-insensitive)
        """
        refs = []
        for insert in self.msp.query('INSERT'):
            if block_name and insert.dxf.name.upper() != block_name.upper():
                continue
            if layer and insert.dxf.layer.upper() != layer.upper():
                continue
            refs.append(insert)
        return refs

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append_instance(
        self,
        transform: PlacementTransform,
        template: BlockTemplate,
        layer: Optional[str] = None,
    ) -> Insert:
        """Add a block reference placed by ``transform``.

        The INSERT location is where the block base point lands, so the
        block's bounding-box center ends up on the transform's insert point.
        ``template.center_offset`` is relative to the base point, which makes
        that location ``transform.origin``.
        """
        block = self.doc.blocks.get(template.name)
        if block is None:
            raise BlockNotFound(f"Block '{template.name}' not found.")

        location = transform.origin
        attribs: Dict[str, Any] = {
            'rotation': transform.rotation_degrees,
            'xscale': transform.scale,
            'yscale': transform.scale,
            'zscale': transform.scale,
        }
        if layer:
            attribs['layer'] = layer

        insert = self.msp.add_blockref(
            template.name, tuple(float(c) for c in location), dxfattribs=attribs
        )
        self._track(insert)
        return insert

    def append_attribute(self, instance: Insert, tag: str, text: str) -> Attrib:
        """Add an ATTRIB to ``instance`` from the block's ATTDEF ``tag``.

        Position, height and rotation come from the ATTDEF, carried through
        the block reference transformation.
        """
        block = instance.block()
        attdef = block.get_attdef(tag) if block is not None else None
        if attdef is None:
            attrib = instance.add_attrib(tag, text, instance.dxf.insert)
            logger.warning(
                "Block '%s' has no ATTDEF %r; attribute placed at the insert point",
                instance.dxf.name, tag,
            )
            return attrib

        dxfattribs = attdef.dxfattribs(drop=_ATTDEF_ONLY_KEYS)
        attrib = instance.add_attrib(
            tag, text, attdef.dxf.insert, dxfattribs=dxfattribs
        )
        attrib.transform(instance.matrix44())
        return attrib

    def append_label(
        self,
        position,
        text: str,
        height: float,
        layer: str = '0',
        color: int = LABEL_COLOR,
        style: str = DEFAULT_TEXT_STYLE,
    ) -> Text:
        """Add a single-line TEXT entity.

        The text style is used only if the drawing defines it.
        """
        attribs: Dict[str, Any] = {
            'layer': layer,
            'height': height,
            'color': color,
        }
        if style and style in self.doc.styles:
            attribs['style'] = style

        label = self.msp.add_text(text, dxfattribs=attribs)
        label.set_placement(position)
        self._track(label)
        return label
