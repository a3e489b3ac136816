"""Command line entry points.

Usage:
    promptreel serve
    promptreel generate --prompt "A calm lake at sunrise with birds flying"
    promptreel generate --prompt "..." --duration "1 min" --orientation portrait --stream
"""

from __future__ import annotations

import asyncio
import sys

import click
from rich.console import Console

from promptreel.client.api import VideoApiClient
from promptreel.client.flow import (
    FAILED_MESSAGE,
    STATUS_MESSAGES,
    STATUS_NETWORK_MESSAGE,
    SUBMIT_NETWORK_MESSAGE,
    SubmissionFlow,
    validate_request,
)
from promptreel.models.schemas import DEFAULT_FORM_VALUES, Duration, Orientation, PollState, PollStatus
from promptreel.services.errors import NetworkError, UpstreamError, ValidationError
from promptreel.services.poller import DEFAULT_POLL_INTERVAL_SEC

console = Console()

_DEFAULT_SERVER = "http://127.0.0.1:3000"


def _render(state: PollState) -> None:
    if state.status.is_loading:
        console.print(f"[cyan]{STATUS_MESSAGES[state.status]}[/cyan]")
    elif state.status is PollStatus.COMPLETED:
        console.print("[green bold]Your video is ready![/green bold]")
        console.print(state.video_url)
    elif state.status in (PollStatus.FAILED, PollStatus.ERROR):
        console.print(f"[red bold]{state.error_message}[/red bold]")


@click.group()
def cli() -> None:
    """Generate AI videos from a text prompt."""


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to APP_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to APP_PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Run the API server that proxies requests to HeyGen."""
    import uvicorn

    from promptreel.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "promptreel.app:create_app",
        factory=True,
        host=host or settings.app_host,
        port=port or settings.app_port,
        log_config=None,
    )


async def _poll(server: str, values: dict, interval: float) -> PollState:
    async with VideoApiClient(server) as api:
        flow = SubmissionFlow(api, interval=interval, on_change=_render)
        try:
            await flow.submit(values)
            return await flow.wait()
        finally:
            flow.close()


async def _stream(server: str, values: dict) -> PollState:
    request = validate_request(values)
    async with VideoApiClient(server) as api:
        console.print(f"[cyan]{STATUS_MESSAGES[PollStatus.GENERATING]}[/cyan]")
        try:
            job_id = await api.generate(request)
        except UpstreamError as exc:
            return PollState(status=PollStatus.ERROR, error_message=exc.message)
        except NetworkError:
            return PollState(status=PollStatus.ERROR, error_message=SUBMIT_NETWORK_MESSAGE)

        console.print(f"[cyan]{STATUS_MESSAGES[PollStatus.POLLING]}[/cyan] [dim]({job_id})[/dim]")
        state = PollState(status=PollStatus.POLLING, job_id=job_id)
        try:
            async for event in api.stream_status(job_id):
                console.print(f"[dim]status: {event.status}[/dim]")
                if event.status == PollStatus.COMPLETED.value:
                    state = state.model_copy(update={"status": PollStatus.COMPLETED, "video_url": event.video_url})
                elif event.status == PollStatus.FAILED.value:
                    state = state.model_copy(update={"status": PollStatus.FAILED, "error_message": FAILED_MESSAGE})
                elif event.status == PollStatus.ERROR.value:
                    state = state.model_copy(update={"status": PollStatus.ERROR, "error_message": event.error})
        except UpstreamError as exc:
            state = state.model_copy(update={"status": PollStatus.ERROR, "error_message": exc.message})
        except NetworkError:
            state = state.model_copy(update={"status": PollStatus.ERROR, "error_message": STATUS_NETWORK_MESSAGE})
        return state


@cli.command()
@click.option("--prompt", "-p", required=True, help="What the video should show (10-500 characters)")
@click.option(
    "--duration",
    "-d",
    default=DEFAULT_FORM_VALUES["duration"],
    show_default=True,
    type=click.Choice([d.value for d in Duration]),
)
@click.option(
    "--orientation",
    "-o",
    default=DEFAULT_FORM_VALUES["orientation"],
    show_default=True,
    type=click.Choice([o.value for o in Orientation]),
)
@click.option("--server", "-s", default=_DEFAULT_SERVER, show_default=True, help="promptreel server URL")
@click.option(
    "--interval",
    type=float,
    default=None,
    envvar="POLL_INTERVAL_SEC",
    help="Seconds between status checks (defaults to POLL_INTERVAL_SEC, then 5)",
)
@click.option("--stream", is_flag=True, help="Let the server poll and stream status events")
def generate(prompt: str, duration: str, orientation: str, server: str, interval: float | None, stream: bool) -> None:
    """Submit a prompt and wait for the video URL."""
    values = {"prompt": prompt, "duration": duration, "orientation": orientation}
    try:
        if stream:
            state = asyncio.run(_stream(server, values))
            _render(state)
        else:
            state = asyncio.run(_poll(server, values, interval or DEFAULT_POLL_INTERVAL_SEC))
    except ValidationError as exc:
        for field, message in exc.field_errors.items():
            console.print(f"[red]{field}: {message}[/red]")
        sys.exit(2)

    if state.status is not PollStatus.COMPLETED:
        sys.exit(1)


if __name__ == "__main__":
    cli()
