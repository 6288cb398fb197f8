"""Tests for the command-line interface."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

from click.testing import CliRunner

from circular_sankey.cli import cli

from conftest import LONG_SPAN, TRIANGLE


def _write_input(tmp_path, records=TRIANGLE, **extra):
    nodes, links = records
    path = tmp_path / "flows.json"
    path.write_text(json.dumps({"nodes": nodes, "links": links, **extra}))
    return path


def test_cli_layout_writes_json(tmp_path):
    src = _write_input(tmp_path)
    out = tmp_path / "layout.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(src), "-o", str(out)])
    assert result.exit_code == 0, result.output
    payload = json.loads(out.read_text())
    assert [n["id"] for n in payload["nodes"]] == ["A", "B", "C"]
    assert sum(ln["circular"] for ln in payload["links"]) == 1


def test_cli_layout_to_stdout(tmp_path):
    src = _write_input(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(src), "--width", "600"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["bounds"][2] <= 580


def test_cli_render_writes_svg(tmp_path):
    src = _write_input(tmp_path)
    out = tmp_path / "out.svg"
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(src), "-o", str(out)])
    assert result.exit_code == 0, result.output
    root = ET.fromstring(out.read_text())
    assert root.tag.endswith("svg")


def test_cli_render_default_output_path(tmp_path):
    src = _write_input(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(src)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "flows.svg").exists()


def test_cli_render_with_legend(tmp_path):
    src = _write_input(
        tmp_path,
        linkTypes={"main": {"name": "Main flow", "color": "#ff0000"}},
    )
    out = tmp_path / "out.svg"
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(src), "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "Main flow" in out.read_text()


def test_cli_layout_options(tmp_path):
    src = _write_input(tmp_path, records=LONG_SPAN)
    out = tmp_path / "layout.json"
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "layout",
            str(src),
            "-o",
            str(out),
            "--align",
            "justify",
            "--route-mode",
            "chained",
            "--iterations",
            "4",
            "--no-virtual-routes",
        ],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(out.read_text())
    assert payload["virtualNodes"] == []
    assert payload["replacedLinks"] == []


def test_cli_rejects_bad_align(tmp_path):
    src = _write_input(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(src), "--align", "diagonal"])
    assert result.exit_code != 0


def test_cli_reports_missing_links(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nodes": [{"name": "a"}]}))
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(path)])
    assert result.exit_code == 1
    assert "link data" in result.output


def test_cli_reports_unresolved_reference(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(
        json.dumps(
            {"nodes": [{"name": "a"}], "links": [{"source": "a", "target": "zz", "value": 1}]}
        )
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(path)])
    assert result.exit_code == 1
    assert "zz" in result.output
