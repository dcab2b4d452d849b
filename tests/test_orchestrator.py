"""
Unit tests for block_drafting.arraying.orchestrator module.

Tests:
- Instance counts and distances for both placement modes
- Stopping at the end of the path
- Zero-length paths
- Attribute numbering per instance
- Repeatability
"""

import math

import numpy as np
import pytest

from block_drafting.arraying import orchestrator
from block_drafting.arraying.attributes import AttributeField
from block_drafting.arraying.orchestrator import BlockTemplate, run_array
from block_drafting.arraying.planner import CountMode, SpacingMode
from block_drafting.geometry.path import LineGeometry, PolylineGeometry, sample_path
from block_drafting.geometry.transform import RotationPolicy
from tests.conftest import assert_point_close, instance_distances


@pytest.fixture
def template():
    return BlockTemplate(
        name="BOLT",
        center_offset=(2.0, 1.0, 0.0),
        attribute_fields=(
            AttributeField("PARTNUM", default_text="XX"),
            AttributeField("LABEL", default_text="Bolt M8"),
            AttributeField("MAKER", is_constant=True, default_text="ACME"),
        ),
    )


def line(length, start=(0.0, 0.0)):
    return sample_path(LineGeometry(start, (start[0] + length, start[1])))


class TestSpacingMode:
    """Arraying with a fixed spacing."""

    def test_exact_multiple(self, template):
        """100 units at spacing 25 gives 5 blocks, one on each end."""
        path = line(100.0)
        result = run_array(path, SpacingMode(25.0), template)

        assert result.blocks_created == 5
        assert not result.is_short
        assert instance_distances(result, path) == pytest.approx([0, 25, 50, 75, 100])

    def test_remainder_left_at_end(self, template):
        path = line(24.0)
        result = run_array(path, SpacingMode(10.0), template)

        assert result.blocks_created == 3
        assert instance_distances(result, path) == pytest.approx([0, 10, 20])

    def test_spacing_longer_than_path(self, template):
        result = run_array(line(5.0), SpacingMode(10.0), template)
        assert result.blocks_created == 1

    @pytest.mark.parametrize("length,spacing", [(73.3, 7.1), (1000.0, 0.1), (3.0, 1.5)])
    def test_consecutive_distance_equals_spacing(self, length, spacing):
        path = line(length)
        result = run_array(path, SpacingMode(spacing), BlockTemplate("B"))

        distances = instance_distances(result, path)
        assert result.blocks_created == math.floor(length / spacing) + 1
        assert np.allclose(np.diff(distances), spacing)
        assert distances[-1] <= length + orchestrator.PATH_END_TOLERANCE


class TestCountMode:
    """Arraying a fixed number of blocks."""

    def test_count_spread_over_length(self, template):
        path = line(10.0)
        result = run_array(path, CountMode(4), template)

        assert result.blocks_created == 4
        assert result.spacing == pytest.approx(10.0 / 3)
        assert instance_distances(result, path)[-1] == pytest.approx(10.0)
        assert_point_close(result.plans[-1].insert_point, path.end)

    def test_single_block_on_start(self, template):
        path = line(50.0, start=(3.0, 4.0))
        result = run_array(path, CountMode(1), template)

        assert result.blocks_created == 1
        assert_point_close(result.plans[0].insert_point, (3, 4, 0))

    def test_polyline_uses_chord_direction(self, template):
        """Instances follow the start-to-end chord, spread over the path length."""
        path = sample_path(PolylineGeometry([(0, 0), (30, 0), (30, 40)]))
        result = run_array(path, CountMode(3), template)

        assert result.spacing == pytest.approx(35.0)
        assert_point_close(result.plans[1].insert_point, (21, 28, 0))


class TestPathEnd:
    """Emission stops at the first point past the path end."""

    def test_overshooting_plan_is_cut(self, template, monkeypatch):
        monkeypatch.setattr(orchestrator, "plan_placement", lambda length, policy: (5, 30.0))
        path = line(100.0)

        result = run_array(path, CountMode(5), template)

        assert result.blocks_planned == 5
        assert result.blocks_created == 4
        assert result.shortfall == 1
        assert result.is_short

    def test_tolerance_allows_tiny_overshoot(self, template, monkeypatch):
        monkeypatch.setattr(orchestrator, "plan_placement", lambda length, policy: (2, 100.0005))
        result = run_array(line(100.0), CountMode(2), template)
        assert result.blocks_created == 2


class TestZeroLengthPath:
    """Paths whose start and end coincide."""

    def test_count_mode_emits_one(self, template):
        path = sample_path(LineGeometry((5, 5), (5, 5)))
        result = run_array(path, CountMode(3), template)

        assert result.blocks_planned == 3
        assert result.blocks_created == 1
        assert result.shortfall == 2
        assert_point_close(result.plans[0].insert_point, (5, 5, 0))
        assert result.plans[0].rotation == 0.0

    def test_spacing_mode_emits_one(self, template):
        path = sample_path(LineGeometry((5, 5), (5, 5)))
        result = run_array(path, SpacingMode(10.0), template)

        assert result.blocks_planned == 1
        assert result.blocks_created == 1

    def test_closed_loop_stacks_on_start(self, template):
        """A loop ending on its start has length but no direction."""
        path = sample_path(PolylineGeometry([(0, 0), (10, 0), (10, 10), (0, 0)]))
        result = run_array(path, CountMode(3), template)

        assert result.blocks_created == 3
        for plan in result.plans:
            assert_point_close(plan.insert_point, (0, 0, 0))


class TestInstances:
    """Per-instance transform and attributes."""

    def test_attributes_numbered_from_one(self, template):
        result = run_array(line(100.0), SpacingMode(25.0), template)

        assert [p.resolved_attributes["PARTNUM"] for p in result.plans] == [
            "01", "02", "03", "04", "05",
        ]
        assert all(p.resolved_attributes["LABEL"] == "Bolt M8" for p in result.plans)
        assert all("MAKER" not in p.resolved_attributes for p in result.plans)

    def test_ordinal(self, template):
        result = run_array(line(20.0), SpacingMode(10.0), template)
        assert [p.ordinal for p in result.plans] == [1, 2, 3]

    def test_rotation_and_scale_shared(self, template):
        path = sample_path(LineGeometry((0, 0), (0, 20)))
        result = run_array(path, CountMode(3), template, RotationPolicy.ALIGN_TO_PATH, 2.0)

        for plan in result.plans:
            assert plan.rotation == pytest.approx(math.pi / 2)
            assert plan.scale == 2.0

    def test_no_rotation_policy(self, template):
        path = sample_path(LineGeometry((0, 0), (0, 20)))
        result = run_array(path, CountMode(3), template, RotationPolicy.NONE)
        assert all(plan.rotation == 0.0 for plan in result.plans)

    def test_repeatable(self, template):
        path = sample_path(LineGeometry((1.5, -2.25), (87.3, 41.9)))

        first = run_array(path, CountMode(7), template)
        second = run_array(path, CountMode(7), template)

        assert first.blocks_created == second.blocks_created
        for a, b in zip(first.plans, second.plans):
            assert np.array_equal(a.insert_point, b.insert_point)
            assert a.rotation == b.rotation
            assert a.resolved_attributes == b.resolved_attributes


class TestBlockTemplate:
    """Tests for BlockTemplate."""

    def test_defaults(self):
        template = BlockTemplate("EMPTY")
        assert_point_close(template.center_offset, (0, 0, 0))
        assert template.attribute_fields == ()

    def test_fields_stored_as_tuple(self):
        template = BlockTemplate("B", attribute_fields=[AttributeField("X", is_constant=True)])
        assert template.attribute_fields == (AttributeField("X", is_constant=True),)

    def test_only_constant_fields_resolve_to_nothing(self):
        template = BlockTemplate("B", attribute_fields=[AttributeField("NUM", is_constant=True)])
        result = run_array(line(10.0), CountMode(2), template)
        assert all(plan.resolved_attributes == {} for plan in result.plans)
