"""Command-line interface for decant."""

from __future__ import annotations

import functools
import json
import sys
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional

import click
import yaml

from decant import __version__
from decant.config.config import Config, find_config_file
from decant.extractor import InputStructureError, Readability, is_probably_readerable
from decant.observability import MetricsManager, configure_logging

EXIT_CONTENT = 0
EXIT_NO_CONTENT = 1
EXIT_INPUT_ERROR = 2


def load_config(config_path: Optional[str], log_level: Optional[str]) -> Config:
    """Load configuration from an explicit file, a discovered file, or the environment."""
    path = Path(config_path) if config_path else find_config_file()
    config = Config.from_yaml(path) if path else Config()
    if log_level:
        config.monitoring = config.monitoring.model_copy(update={"log_level": log_level})
    return config


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach ``--config`` and ``--log-level`` and hand the command a loaded Config."""

    @click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(exists=True, dir_okay=False),
        help="Configuration file path",
    )
    @click.option(
        "--log-level",
        default=None,
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        help="Logging level",
    )
    @functools.wraps(func)
    def wrapper(*args: Any, config_path: Optional[str], log_level: Optional[str], **kwargs: Any) -> Any:
        try:
            config = load_config(config_path, log_level)
        except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
            raise click.BadParameter(str(e), param_hint="--config") from e
        configure_logging(config.monitoring)
        MetricsManager(config.monitoring).start()
        return func(*args, config=config, **kwargs)

    return wrapper


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """decant - pull the readable article out of an HTML page."""


@cli.command()
@click.argument("source", type=click.File("rb"), default="-")
@click.option("--title", default=None, help="Known article title; a heading repeating it is removed")
@click.option("--url", default=None, help="Source URL of the document")
@click.option(
    "--format",
    "output_format",
    default="html",
    type=click.Choice(["html", "text", "json"]),
    help="Output format",
)
@click.option("--char-threshold", type=click.IntRange(min=0), default=None, help="Minimum article length")
@common_options
def extract(
    source: BinaryIO,
    title: Optional[str],
    url: Optional[str],
    output_format: str,
    char_threshold: Optional[int],
    config: Config,
) -> None:
    """Extract the article from SOURCE (a file, or - for stdin)."""
    settings = config.extraction
    if char_threshold is not None:
        settings = settings.model_copy(update={"char_threshold": char_threshold})

    try:
        article = Readability(source.read(), url=url, settings=settings, title=title).parse()
    except InputStructureError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_INPUT_ERROR)

    if article is None:
        click.echo("No content found", err=True)
        sys.exit(EXIT_NO_CONTENT)

    if output_format == "json":
        click.echo(json.dumps(article.to_dict(), ensure_ascii=False, indent=2))
    elif output_format == "text":
        click.echo(article.text_content)
    else:
        click.echo(article.content)


@cli.command()
@click.argument("source", type=click.File("rb"))
@click.option("--min-content-length", type=click.IntRange(min=0), default=140, help="Shortest block that counts")
@click.option("--min-score", type=float, default=20.0, help="Score a page must exceed")
@common_options
def check(source: BinaryIO, min_content_length: int, min_score: float, config: Config) -> None:
    """Report whether SOURCE probably holds an article."""
    try:
        readerable = is_probably_readerable(
            source.read(),
            min_content_length=min_content_length,
            min_score=min_score,
            parser=config.extraction.parser,
        )
    except InputStructureError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_INPUT_ERROR)

    click.echo("readerable" if readerable else "not readerable")
    sys.exit(EXIT_CONTENT if readerable else EXIT_NO_CONTENT)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
