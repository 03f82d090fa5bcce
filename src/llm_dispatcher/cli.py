import asyncio
import json

import click

from . import __version__
from .config.settings import get_settings
from .exceptions import ValidationException
from .orchestrator.dispatcher import Dispatcher
from .telemetry.logger import setup_logging


def get_version():
    return __version__


def run_server(host=None, port=None, reload=False):
    from .server.main import start_server

    start_server(host=host, port=port, reload=reload)


async def _ask(payload):
    dispatcher = Dispatcher.initialize(get_settings())
    try:
        return await dispatcher.dispatch(payload)
    finally:
        await dispatcher.aclose()


async def _providers(probe):
    dispatcher = Dispatcher.initialize(get_settings())
    try:
        results = await dispatcher.prober.probe_all() if probe else {}
        return dispatcher.get_provider_status(), dispatcher.registration_report, results
    finally:
        await dispatcher.aclose()


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    setup_logging(level=log_level, format="console")


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def version(format):
    if format == "json":
        click.echo(json.dumps({"version": get_version()}))
    else:
        click.echo(f"v{get_version()}")


@cli.command()
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
@click.option("--reload", is_flag=True)
def serve(host, port, reload):
    run_server(host, port, reload)


@cli.command()
@click.argument("prompt")
@click.option("--system", "system_message", default=None, help="System message")
@click.option("--temperature", default=None, type=float)
@click.option("--max-tokens", default=None, type=int)
@click.option("--model", "model_key", default=None, help="Explicit model for every provider")
@click.option("--json", "as_json", is_flag=True, help="Print the full response as JSON")
def ask(prompt, system_message, temperature, max_tokens, model_key, as_json):
    """Dispatch PROMPT once and print the answer."""
    payload = {
        "prompt": prompt,
        "system_message": system_message,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "model_key": model_key,
    }
    try:
        result = asyncio.run(_ask(payload))
    except ValidationException as e:
        raise click.BadParameter(e.message, param_hint=e.field)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
        return

    click.echo(result.response)
    click.echo(
        f"[{result.provider}/{result.model_used}] attempts={result.attempt_count} "
        f"latency={result.latency_ms:.0f}ms cached={result.cached}",
        err=True,
    )
    if not result.success:
        raise SystemExit(2)


@cli.command()
@click.option("--probe", is_flag=True, help="Run a health probe before reporting")
def providers(probe):
    """List registered providers."""
    status, report, results = asyncio.run(_providers(probe))

    if not status:
        click.echo("No providers registered.")
    for entry in status:
        state = "active" if entry["is_active"] else "inactive"
        line = f"{entry['name']:<12} {state:<9} priority={entry['priority']} model={entry['models_available'][0]}"
        if probe:
            line += " probe=" + ("ok" if results.get(entry["name"]) else "failed")
        click.echo(line)
    for rejected in report.rejected:
        click.echo(f"{rejected.name:<12} skipped   ({rejected.reason})")


if __name__ == "__main__":
    cli()
