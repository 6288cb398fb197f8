"""Command-line interface for circular-sankey."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from circular_sankey import __version__
from circular_sankey.layout.config import SankeyConfig
from circular_sankey.layout.constants import ALIGN_MODES, USE_VIRTUAL_ROUTES
from circular_sankey.layout.engine import compute_layout
from circular_sankey.parser.model import RouteMode
from circular_sankey.parser.records import read_payload
from circular_sankey.render.svg import render_svg


def _layout_options(func):
    """Options shared by every command that runs a layout."""
    options = [
        click.option("--width", type=float, default=None, help="Canvas width in px."),
        click.option("--height", type=float, default=None, help="Canvas height in px."),
        click.option("--padding", type=float, default=None, help="Outer canvas padding."),
        click.option(
            "--align",
            type=click.Choice(ALIGN_MODES),
            default=None,
            help="Column alignment of nodes.",
        ),
        click.option(
            "--iterations", type=int, default=None, help="Relaxation iterations."
        ),
        click.option(
            "--route-mode",
            type=click.Choice([m.value for m in RouteMode]),
            default=None,
            help="How long-span links are drawn after layout.",
        ),
        click.option(
            "--virtual-routes/--no-virtual-routes",
            default=USE_VIRTUAL_ROUTES,
            show_default=True,
            help="Split long-span links into virtual chains while laying out.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(input_file: Path, **options: Any) -> tuple[SankeyConfig, Any, Any]:
    """Config from CLI options plus an optional ``linkTypes`` table in the input."""
    payload = read_payload(input_file.read_text())
    overrides = {k: v for k, v in options.items() if v is not None}
    if "virtual_routes" in overrides:
        overrides["use_virtual_routes"] = overrides.pop("virtual_routes")
    if payload.get("linkTypes"):
        overrides["link_types"] = payload["linkTypes"]
    config = SankeyConfig().with_overrides(**overrides)
    return config, payload.get("nodes"), payload.get("links")


def _run(input_file: Path, **options: Any):
    try:
        config, nodes, links = _build_config(input_file, **options)
        return config, compute_layout(nodes, links, config)
    except (ValueError, TypeError) as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """circular-sankey: lay out and draw Sankey diagrams with cycles."""


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output JSON path. Defaults to stdout.",
)
@click.option("--indent", type=int, default=2, help="JSON indentation.")
@_layout_options
def layout(input_file: Path, output: Path | None, indent: int, **options: Any) -> None:
    """Lay out a nodes/links JSON file and write the computed geometry."""
    _, graph = _run(input_file, **options)
    text = json.dumps(graph.to_dict(), indent=indent, default=str)
    if output is None:
        click.echo(text)
    else:
        output.write_text(text)
        click.echo(f"Wrote {output}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output SVG path. Defaults to INPUT with .svg suffix.",
)
@click.option("--no-labels", is_flag=True, default=False, help="Omit node labels.")
@click.option("--no-legend", is_flag=True, default=False, help="Omit the legend.")
@_layout_options
def render(
    input_file: Path,
    output: Path | None,
    no_labels: bool,
    no_legend: bool,
    **options: Any,
) -> None:
    """Lay out a nodes/links JSON file and draw it as SVG."""
    config, graph = _run(input_file, **options)
    svg = render_svg(graph, config, labels=not no_labels, legend=not no_legend)
    if output is None:
        output = input_file.with_suffix(".svg")
    output.write_text(svg)
    click.echo(f"Wrote {output}")


if __name__ == "__main__":
    cli()
