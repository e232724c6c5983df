"""CLI: allion decode, allion render"""

import json
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from allion_voice.decoder import decode_variant
from allion_voice.models.message import TextPayload
from allion_voice.renderer import render

console = Console()


def _settings():
    from allion_voice.cli.main import _settings
    return _settings()


@click.command("decode")
@click.argument("message")
@click.option("--json-output", "--json", is_flag=True)
def decode_cmd(message: str, json_output: bool):
    """Decode a raw chat message into its voice and text parts."""
    variant = decode_variant(message)
    decoded = variant.to_message()
    if json_output:
        click.echo(json.dumps({"kind": variant.kind, **decoded.model_dump()}, indent=2))
        return
    console.print(f"[dim]format: {variant.kind}[/dim]")
    console.print(Panel(decoded.voice, title="voice", border_style="green"))
    console.print(Panel(decoded.text.content, title="text", border_style="cyan"))
    if decoded.text.web_sources or decoded.text.youtube_videos:
        console.print(
            f"[dim]{len(decoded.text.web_sources)} web source(s), "
            f"{len(decoded.text.youtube_videos)} video(s)[/dim]"
        )


@click.command("render")
@click.argument("source", type=click.File("r"), default="-", required=False)
@click.option("-o", "--output", type=click.File("w"), default=None, help="Write HTML here instead of stdout")
def render_cmd(source, output):
    """Render a text payload (JSON, file or stdin) to HTML."""
    raw = source.read()
    try:
        payload = TextPayload.model_validate_json(raw)
    except ValidationError as e:
        console.print(f"[red]Not a valid text payload:[/red] {e.error_count()} error(s)")
        for err in e.errors(include_url=False):
            loc = ".".join(str(p) for p in err["loc"]) or "(root)"
            console.print(f"  [yellow]{loc}[/yellow]: {err['msg']}")
        raise SystemExit(1)
    html = render(payload, _settings().render_context())
    (output or sys.stdout).write(html + "\n")
