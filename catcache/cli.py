"""Command-line entry point: resolve settings and run the proxy under uvicorn.

All of ``--host``, ``--port`` and ``--cache`` are required. They are declared
optional and checked by hand so that each missing flag gets its own message
instead of click's generic "Missing option" error.
"""

import logging
from typing import Optional

import typer
import uvicorn
from uvicorn.config import LOG_LEVELS
from pydantic import ValidationError

from app import create_app
from catcache import __version__
from catcache.settings import build_settings, env_log_level, load_env

cli = typer.Typer(
    name="catcache",
    help="Caching proxy for http.cat status code images.",
    add_completion=False,
)

MISSING_HOST = "Please, specify server host"
MISSING_PORT = "Please, specify server port"
MISSING_CACHE = "Please, specify cache directory"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"catcache {__version__}")
        raise typer.Exit()


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


@cli.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port."),
    cache: Optional[str] = typer.Option(None, "--cache", "-c", help="Cache directory path."),
    upstream: Optional[str] = typer.Option(
        None, "--upstream", help="Upstream base URL (default: $CATCACHE_UPSTREAM_URL or https://http.cat/)."
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level: critical, error, warning, info, debug or trace (default: $CATCACHE_LOG_LEVEL or info)."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Run the caching proxy."""
    load_env()

    if not host:
        _fail(MISSING_HOST)
    if port is None:
        _fail(MISSING_PORT)
    if not cache:
        _fail(MISSING_CACHE)

    # Only the level names uvicorn understands are accepted
    level = (log_level or env_log_level()).lower()
    if level not in LOG_LEVELS:
        _fail(f"Unknown log level: {level} (choose from {', '.join(LOG_LEVELS)})")

    logging.basicConfig(
        level=LOG_LEVELS[level],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = build_settings(host, port, cache, upstream)
    except ValidationError as e:
        _fail(f"Invalid configuration: {e}")

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=level)


def main() -> None:
    """Console-script entry point."""
    cli()


if __name__ == "__main__":
    main()
