"""
Tests for the main.py command-line interface.

Tests:
- Subcommands end to end on a saved drawing
- Exit codes for user errors
- Configuration defaults and overrides
"""

import json
import logging

import pytest

import main
from block_drafting.io.dxf_document import DrawingDatabase
from block_drafting.logging_config import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery away from the developer's working directory."""
    monkeypatch.chdir(tmp_path)
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


class TestMeasure:
    """Tests for the measure subcommand."""

    def test_prints_length(self, drawing_file, handles, capsys):
        code = main.main(["measure", str(drawing_file), "--handle", handles["line100"]])

        assert code == 0
        assert capsys.readouterr().out.strip() == "Length: 100.00 units"

    def test_not_a_line(self, drawing_file, handles, capsys):
        code = main.main(["measure", str(drawing_file), "--handle", handles["circle"]])

        assert code == 1
        assert capsys.readouterr().out == ""

    def test_missing_drawing(self, tmp_path):
        assert main.main(["measure", str(tmp_path / "nope.dxf"), "--handle", "1F"]) == 1


class TestArray:
    """Tests for the array subcommand."""

    def test_spacing_writes_output(self, drawing_file, handles, tmp_path, capsys):
        out = tmp_path / "out.dxf"
        code = main.main([
            "array", str(drawing_file),
            "--path-handle", handles["line100"],
            "--block", "BOLT",
            "--spacing", "25",
            "-o", str(out),
        ])

        assert code == 0
        assert "Created 5 'BOLT' blocks on the line." in capsys.readouterr().out
        assert len(DrawingDatabase.open(out).msp.query('INSERT')) == 5
        assert len(DrawingDatabase.open(drawing_file).msp.query('INSERT')) == 0

    def test_default_count_overwrites_input(self, drawing_file, handles):
        code = main.main([
            "array", str(drawing_file),
            "--path-handle", handles["line100"],
            "--block", "BOLT",
        ])

        assert code == 0
        assert len(DrawingDatabase.open(drawing_file).msp.query('INSERT')) == 5

    def test_no_align(self, drawing_file, handles):
        main.main([
            "array", str(drawing_file),
            "--path-handle", handles["diagonal"],
            "--block", "BOLT", "--count", "2", "--no-align",
        ])

        inserts = DrawingDatabase.open(drawing_file).msp.query('INSERT')
        assert all(i.dxf.rotation == 0.0 for i in inserts)

    def test_config_defaults(self, drawing_file, handles, tmp_path):
        config = tmp_path / "custom.json"
        config.write_text(json.dumps({
            "array": {"default_count": 3, "layer": "FIX"},
            "output": {"suffix": "_out"},
        }), encoding="utf-8")

        code = main.main([
            "--config", str(config),
            "array", str(drawing_file),
            "--path-handle", handles["line100"],
            "--block", "BOLT",
        ])

        assert code == 0
        out = drawing_file.with_name("plan_out.dxf")
        inserts = DrawingDatabase.open(out).msp.query('INSERT')
        assert len(inserts) == 3
        assert all(i.dxf.layer == "FIX" for i in inserts)

    def test_missing_block(self, drawing_file, handles):
        code = main.main([
            "array", str(drawing_file),
            "--path-handle", handles["line100"],
            "--block", "NOPE",
        ])

        assert code == 1
        assert len(DrawingDatabase.open(drawing_file).msp.query('INSERT')) == 0

    def test_count_and_spacing_exclusive(self, drawing_file, handles):
        with pytest.raises(SystemExit):
            main.main([
                "array", str(drawing_file),
                "--path-handle", handles["line100"],
                "--block", "BOLT", "--count", "3", "--spacing", "10",
            ])

    @pytest.mark.parametrize("scale", ["nan", "inf", "-2"])
    def test_invalid_scale_rejected(self, drawing_file, handles, scale):
        with pytest.raises(SystemExit):
            main.main([
                "array", str(drawing_file),
                "--path-handle", handles["line100"],
                "--block", "BOLT", "--count", "2", "--scale", scale,
            ])
        assert len(DrawingDatabase.open(drawing_file).msp.query('INSERT')) == 0

    def test_non_finite_scale_from_config(self, drawing_file, handles, tmp_path):
        config = tmp_path / "custom.json"
        config.write_text('{"array": {"scale": NaN}}', encoding="utf-8")

        code = main.main([
            "--config", str(config),
            "array", str(drawing_file),
            "--path-handle", handles["line100"],
            "--block", "BOLT", "--count", "2",
        ])

        assert code == 1
        assert len(DrawingDatabase.open(drawing_file).msp.query('INSERT')) == 0

    def test_non_positive_count(self, drawing_file, handles):
        with pytest.raises(SystemExit):
            main.main([
                "array", str(drawing_file),
                "--path-handle", handles["line100"],
                "--block", "BOLT", "--count", "0",
            ])


class TestLabel:
    """Tests for the label subcommand."""

    def test_labels_block_references(self, drawing, tmp_path, capsys):
        drawing.msp.add_blockref("BOLT", (0, 0))
        drawing.msp.add_blockref("BOLT", (10, 0))
        path = drawing.save(tmp_path / "refs.dxf")

        code = main.main(["label", str(path), "--prefix", "LMP", "--height", "2"])

        assert code == 0
        assert "Added labels with prefix 'LMP' to 2 blocks." in capsys.readouterr().out
        texts = [t.dxf.text for t in DrawingDatabase.open(path).msp.query('TEXT')]
        assert texts == ["LMP1", "LMP2"]

    def test_invalid_prefix(self, drawing_file):
        assert main.main(["label", str(drawing_file), "--prefix", "A B"]) == 1


class TestInitConfig:
    """Tests for the init-config subcommand."""

    def test_writes_sample(self, tmp_path):
        target = tmp_path / "sample.json"

        assert main.main(["init-config", str(target)]) == 0

        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["array"]["default_count"] == 5
        assert data["labels"]["prefix"] == "BLK"


class TestLogJson:
    """--log-json writes JSON lines."""

    def test_json_log_file(self, drawing_file, handles, tmp_path):
        log_file = tmp_path / "run.log.json"

        main.main([
            "--log-json", str(log_file),
            "measure", str(drawing_file), "--handle", handles["line100"],
        ])
        logging.getLogger(PACKAGE_LOGGER).handlers[-1].flush()

        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert any(r["message"] == "Length: 100.00 units" for r in records)
        assert all(r.get("command") == "measure" for r in records if r["message"].startswith("Length"))
