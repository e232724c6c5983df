"""CLI: allion resolve, allion serve"""

import click
from rich.console import Console
from rich.table import Table

from allion_voice.assets import AssetResolver
from allion_voice.errors import AllionError

console = Console()


def _settings():
    from allion_voice.cli.main import _settings
    return _settings()


@click.command("resolve")
@click.argument("reference")
@click.option("--full-path", is_flag=True, help="Use the path-hinted lookup instead of name-only")
@click.option("--roots", "show_roots", is_flag=True, help="List the candidate roots in priority order")
def resolve_cmd(reference: str, full_path: bool, show_roots: bool):
    """Locate an asset under the configured candidate roots."""
    context = _settings().deployment_context()
    if show_roots:
        table = Table(title="Candidate roots")
        table.add_column("#", justify="right")
        table.add_column("Kind")
        table.add_column("Root")
        table.add_column("Exists")
        roots = [("path" if full_path else "name", r)
                 for r in (context.path_roots if full_path else context.name_roots)]
        for i, (kind, root) in enumerate(roots):
            table.add_row(str(i), kind, str(root), "yes" if root.is_dir() else "[dim]no[/dim]")
        console.print(table)

    resolver = AssetResolver(context)
    try:
        asset = resolver.resolve_path(reference) if full_path else resolver.resolve_name(reference)
    except AllionError as e:
        console.print(f"[red]{e.code}:[/red] {e}")
        raise SystemExit(1)
    console.print(f"[green]{asset.path}[/green] [dim]({asset.content_type})[/dim]", soft_wrap=True)


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=3000, type=int, show_default=True)
def serve_cmd(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn
    from allion_voice.api import create_app

    uvicorn.run(create_app(_settings()), host=host, port=port)
