from __future__ import annotations

from pathlib import Path

import pytest

import ezresolve.cli as cli_module
from ezresolve.entity import BlockDefinition, LayerEntry
from tests._helpers import make_drawing, make_entity


def _dummy_drawing():
    block = BlockDefinition(name="B", entities=(make_entity("LINE", "21", start=(0.0, 0.0), end=(1.0, 0.0)),))
    return make_drawing(
        [
            make_entity("LINE", "10", start=(0.0, 0.0), end=(1.0, 0.0)),
            make_entity("INSERT", "11", name="B"),
            make_entity("INSERT", "12", name="MISSING"),
            make_entity("TEXT", "13"),
            make_entity("CIRCLE", "14", center=(0.0, 0.0), radius=-1.0),
        ],
        layers=[LayerEntry(name="0", color_index=7)],
        blocks=[block],
    )


def test_cli_inspect_reports_counts_and_diagnostics(monkeypatch, tmp_path: Path, capsys) -> None:
    dummy_path = tmp_path / "dummy.dxf"
    dummy_path.write_text("0\nEOF\n")
    monkeypatch.setattr(cli_module, "read_dxf", lambda path: _dummy_drawing())

    assert cli_module.main(["inspect", str(dummy_path), "--verbose"]) == 0

    out = capsys.readouterr().out
    assert f"file: {dummy_path}" in out
    assert "layers: 1" in out
    assert "blocks: 1" in out
    assert "total_entities: 5" in out
    assert "INSERT: 2" in out
    assert "resolved_entities: 3" in out
    assert "skipped_entities: 1" in out
    assert "error_entities: 1" in out
    assert "draw_records: 3" in out
    assert "skipped[TEXT]: 1" in out
    assert "diagnostics[unresolvable-reference]: 1" in out
    assert "diagnostics[degenerate-geometry]: 1" in out
    assert "diagnostic: [unsupported-type] TEXT 13" in out


def test_cli_inspect_counts_records_per_color(monkeypatch, tmp_path: Path, capsys) -> None:
    dummy_path = tmp_path / "dummy.dxf"
    dummy_path.write_text("0\nEOF\n")
    monkeypatch.delenv("EZRESOLVE_MONOCHROME_COLOR", raising=False)
    monkeypatch.setattr(cli_module, "read_dxf", lambda path: _dummy_drawing())

    assert cli_module.main(["inspect", str(dummy_path)]) == 0

    lines = capsys.readouterr().out.splitlines()
    color_lines = [line for line in lines if line.startswith("color[")]
    assert "color[#ff6600]: 1" in color_lines
    assert sum(int(line.rsplit(": ", 1)[1]) for line in color_lines) == 3


def test_cli_inspect_missing_file_returns_error(tmp_path: Path, capsys) -> None:
    assert cli_module.main(["inspect", str(tmp_path / "missing.dxf")]) == 2
    assert "file not found" in capsys.readouterr().err


def test_cli_inspect_read_failure_returns_error(monkeypatch, tmp_path: Path, capsys) -> None:
    dummy_path = tmp_path / "broken.dxf"
    dummy_path.write_text("garbage")

    def fail(path):
        raise OSError("not a DXF file")

    monkeypatch.setattr(cli_module, "read_dxf", fail)
    assert cli_module.main(["inspect", str(dummy_path)]) == 2
    assert "failed to read DXF: not a DXF file" in capsys.readouterr().err


def test_cli_convert_prints_summary(tmp_path: Path, capsys) -> None:
    ezdxf = pytest.importorskip("ezdxf")
    source = tmp_path / "in.dxf"
    output = tmp_path / "out.dxf"
    doc = ezdxf.new("R2010")
    doc.modelspace().add_line((0, 0), (1, 1))
    doc.modelspace().add_circle((0, 0), radius=1, dxfattribs={"color": 1})
    doc.saveas(str(source))

    assert cli_module.main(["convert", str(source), str(output), "--monochrome", "#00ff00"]) == 0

    out = capsys.readouterr().out
    assert f"output: {output}" in out
    assert "total_entities: 2" in out
    assert "written_records: 2" in out
    written = ezdxf.readfile(str(output))
    assert {entity.dxf.true_color for entity in written.modelspace()} == {0x00FF00}


def test_cli_convert_passes_options(monkeypatch, tmp_path: Path) -> None:
    source = tmp_path / "in.dxf"
    source.write_text("0\nEOF\n")
    captured = {}

    def fake_convert(input_path, output_path, **kwargs):
        captured.update(kwargs)
        raise ValueError("stop")

    monkeypatch.setattr(cli_module, "convert_file", fake_convert)
    code = cli_module.main(
        ["convert", str(source), str(tmp_path / "out.dxf"), "--strict", "--base-point-offset", "--types", "LINE"]
    )

    assert code == 2
    assert captured["strict"] is True
    assert captured["types"] == "LINE"
    assert captured["options"].apply_base_point_offset is True


def test_cli_convert_rejects_invalid_monochrome(tmp_path: Path, capsys) -> None:
    source = tmp_path / "in.dxf"
    source.write_text("0\nEOF\n")
    assert cli_module.main(["convert", str(source), str(tmp_path / "out.dxf"), "--monochrome", "red"]) == 2
    assert "invalid --monochrome" in capsys.readouterr().err


def test_cli_without_command_prints_help(capsys) -> None:
    assert cli_module.main([]) == 0
    assert "usage: ezresolve" in capsys.readouterr().out
