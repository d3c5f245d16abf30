"""CLI entry point."""

from __future__ import annotations

import asyncio
import json
import sys

import rich_click as click

from llmrelay.config import RelayConfig
from llmrelay.errors import ConfigurationError
from llmrelay.logging_config import LOG_LEVELS, configure_logging

click.rich_click.USE_MARKDOWN = True
click.rich_click.MAX_WIDTH = 100
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."


def _load_config(**overrides: object) -> RelayConfig:
    try:
        return RelayConfig.from_env(**overrides)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)


@click.group()
@click.version_option(package_name="llmrelay")
def cli() -> None:
    """llmrelay - authenticated relay for LLM chat completion APIs.

    Forwards frontend requests to an OpenAI-compatible API, adding the
    server-held API key. Configuration comes from the environment
    (OPENAI_API_KEY, RELAY_KEY, MODEL_DEFAULT, TIMEOUT_AI, ALLOWED_ORIGINS, PORT).

    **Commands:**

        llmrelay serve          Run the relay

        llmrelay check-config   Show the effective configuration
    """
    pass


@cli.command()
@click.option("--host", default=None, help="Host to bind (default: $HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to bind (default: $PORT or 7860)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: $RELAY_LOG_LEVEL or INFO)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Log output format (default: $RELAY_LOG_FORMAT or text)",
)
def serve(
    host: str | None, port: int | None, log_level: str | None, log_format: str | None
) -> None:
    """Run the relay until SIGINT or SIGTERM.

    **Examples:**

        llmrelay serve

        PORT=8080 ALLOWED_ORIGINS=https://app.example llmrelay serve --log-format json
    """
    import signal as sig

    from llmrelay.server import RelayServer

    try:
        configure_logging(level=log_level, format=log_format)  # type: ignore[arg-type]
    except ValueError as e:
        click.echo(f"Error: {e} (check RELAY_LOG_LEVEL)", err=True)
        sys.exit(2)
    config = _load_config(host=host, port=port)
    server = RelayServer(config=config)

    async def run() -> None:
        loop = asyncio.get_running_loop()

        def handle_shutdown(sig_name: str) -> None:
            click.echo(f"\nReceived {sig_name}, shutting down...", err=True)
            server.request_shutdown()

        loop.add_signal_handler(sig.SIGTERM, lambda: handle_shutdown("SIGTERM"))
        loop.add_signal_handler(sig.SIGINT, lambda: handle_shutdown("SIGINT"))

        try:
            await server.serve()
        finally:
            await server.shutdown()
            loop.remove_signal_handler(sig.SIGTERM)
            loop.remove_signal_handler(sig.SIGINT)

    asyncio.run(run())


@cli.command("check-config")
def check_config() -> None:
    """Print the effective configuration with secrets redacted.

    Exits with status 1 when RELAY_KEY or OPENAI_API_KEY is missing.
    """
    config = _load_config()
    click.echo(json.dumps(config.describe(), indent=2))

    missing = config.missing_secrets()
    if missing:
        click.echo(f"Missing required secrets: {', '.join(missing)}", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()
