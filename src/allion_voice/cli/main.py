"""
Allion CLI: `allion` command.

Commands:
  allion decode <message>     Show the voice/text split of a chat message
  allion render [file]        Render a text payload (JSON) to HTML
  allion resolve <name>       Locate an asset under the configured roots
  allion serve                Run the HTTP API
  allion listen               Print diagnostic reports and transcript entries live
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install allion-voice[cli]")

from allion_voice import __version__
from allion_voice.config import Settings

console = Console()


def _settings() -> Settings:
    return Settings()


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(log_level: str):
    """Allion voice agent tooling."""
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# Register subcommands from separate modules
from allion_voice.cli.messages import decode_cmd, render_cmd
from allion_voice.cli.assets import resolve_cmd, serve_cmd
from allion_voice.cli.listen import listen_cmd

main.add_command(decode_cmd)
main.add_command(render_cmd)
main.add_command(resolve_cmd)
main.add_command(serve_cmd)
main.add_command(listen_cmd)


if __name__ == "__main__":
    main()
