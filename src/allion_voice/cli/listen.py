"""CLI: allion listen"""

from typing import Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from allion_voice.diagnostics import DiagnosticChannelConsumer
from allion_voice.models.message import TextPayload
from allion_voice.transcript import TranscriptEngine
from allion_voice.transport.socketio import SocketIOChannel

console = Console()


def _settings():
    from allion_voice.cli.main import _settings
    return _settings()


def _run(coro):
    from allion_voice.cli.main import _run
    return _run(coro)


def _print_report(report: TextPayload) -> None:
    console.print(Panel(Markdown(report.content), title="Diagnostic Report", border_style="blue"))
    for source in report.web_sources:
        console.print(f"  [blue]source:[/blue] {source.title} [dim]{source.url}[/dim]")
    for video in report.youtube_videos:
        console.print(f"  [red]video:[/red] {video.title} [dim]{video.url}[/dim]")


@click.command("listen")
@click.option("--url", default=None, help="Socket.IO server URL (default: ALLION_SOCKET_URL)")
@click.option("--token", default=None, help="Auth token (default: ALLION_SOCKET_TOKEN)")
@click.option("--identity", default=None, help="Local participant identity")
def listen_cmd(url: Optional[str], token: Optional[str], identity: Optional[str]):
    """Print diagnostic reports and transcript entries as they arrive."""
    settings = _settings()

    async def _listen():
        channel = SocketIOChannel(
            url or settings.socket_url,
            token=token or settings.socket_token,
            socketio_path=settings.socket_path,
            ready_timeout=settings.ready_timeout,
        )
        consumer = DiagnosticChannelConsumer(channel, on_report=_print_report)
        engine = TranscriptEngine(channel, context=settings.render_context(), local_identity=identity)
        consumer.start()
        with console.status("Connecting..."):
            await channel.connect()
        console.print("[cyan]Listening (Ctrl+C to exit)[/cyan]\n")
        try:
            async for entry in engine.listen():
                who = "You" if entry.role == "user" else (entry.sender or "Agent")
                console.print(f"[green]{who}:[/green] {entry.message.voice}")
                if entry.message.is_structured:
                    console.print(Panel(Markdown(entry.message.text.content), border_style="dim"))
                if consumer.state.last_error:
                    console.print(f"[yellow]diagnostic channel: {consumer.state.last_error}[/yellow]")
        finally:
            engine.close()
            consumer.stop()
            await channel.disconnect()

    try:
        _run(_listen())
    except KeyboardInterrupt:
        pass
