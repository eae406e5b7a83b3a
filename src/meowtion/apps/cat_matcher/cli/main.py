"""Command line interface for the cat matcher."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from meowtion.logging_utils import configure_logging

from ..core.config import MatcherConfig, load_config
from ..core.errors import CatMatcherError, ConfigurationError, OracleResponseError
from ..core.models import BreedAnalysis, ImageSource, MatchResult
from ..core.service import CatMatcherService

LOG_PATH = configure_logging("cat_matcher", include_console=False)
logger = logging.getLogger(__name__)
logger.info("Cat matcher logging initialised → %s", LOG_PATH)

app = typer.Typer(help="Match cat photos against the roster of known campus cats.")


def _source(image: str) -> ImageSource:
    return ImageSource.from_reference(image)


def _config(**overrides: object) -> MatcherConfig:
    try:
        return load_config(**{k: v for k, v in overrides.items() if v is not None})
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


async def _run_match(config: MatcherConfig, source: ImageSource) -> MatchResult:
    service = CatMatcherService(config)
    try:
        return await service.find_match(source)
    finally:
        await service.aclose()


async def _run_identify(config: MatcherConfig, source: ImageSource) -> BreedAnalysis:
    service = CatMatcherService(config)
    try:
        return await service.identify(source)
    finally:
        await service.aclose()


@app.command()
def match(
    image: str = typer.Argument(..., help="Path or URL of the cat photo."),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", help="Similarity needed to declare a match (0-1)."
    ),
    max_conflicts: Optional[int] = typer.Option(
        None, "--max-conflicts", help="Most conflicting features tolerated in a match."
    ),
    sequential: bool = typer.Option(
        False, "--sequential/--concurrent", help="Evaluate candidates one at a time."
    ),
    match_timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Overall deadline for the match in seconds."
    ),
    roster: Optional[Path] = typer.Option(
        None, "--roster", help="TOML roster file to use instead of the built-in cats."
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Oracle model identifier."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="OpenAI-compatible endpoint of the oracle."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
) -> None:
    """Check whether IMAGE shows one of the known cats."""

    config = _config(
        match_threshold=threshold,
        max_conflicts=max_conflicts,
        concurrent=False if sequential else None,
        match_timeout=match_timeout,
        roster_path=roster,
        model=model,
        base_url=base_url,
    )
    try:
        result = asyncio.run(_run_match(config, _source(image)))
    except (CatMatcherError, OracleResponseError) as exc:
        logger.error("Match failed for %s: %s", image, exc)
        typer.echo(f"Match failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if as_json:
        typer.echo(json.dumps(result.to_json(), indent=2))
        return
    _print_match_summary(result)


@app.command()
def identify(
    image: str = typer.Argument(..., help="Path or URL of the cat photo."),
    model: Optional[str] = typer.Option(None, "--model", help="Oracle model identifier."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
) -> None:
    """Identify the breed of the cat in IMAGE."""

    config = _config(model=model)
    try:
        analysis = asyncio.run(_run_identify(config, _source(image)))
    except (CatMatcherError, OracleResponseError) as exc:
        logger.error("Breed identification failed for %s: %s", image, exc)
        typer.echo(f"Identification failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if as_json:
        typer.echo(json.dumps(analysis.to_json(), indent=2))
        return
    if not analysis.is_cat:
        typer.echo(f"No cat found: {analysis.description}")
        return
    typer.echo(f"{analysis.breed} (confidence={analysis.confidence:.2f})")
    typer.echo(f"  {analysis.description}")


@app.command("roster")
def show_roster(
    roster: Optional[Path] = typer.Option(
        None, "--roster", help="TOML roster file to use instead of the built-in cats."
    ),
) -> None:
    """List the known cats and their reference images."""

    config = _config(roster_path=roster, require_api_key=False)
    try:
        cats = config.load_roster()
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    for cat in cats:
        where = f" ({cat.location.description})" if cat.location else ""
        typer.echo(f"{cat.name}: {len(cat.reference_images)} reference image(s){where}")
        for source in cat.reference_images:
            typer.echo(f"    • {source.describe()}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8787, "--port"),
    reload: bool = typer.Option(False, "--reload/--no-reload"),
) -> None:
    """Run the HTTP API."""

    from ..api.main import run

    configure_logging("cat_matcher_api")
    run(host=host, port=port, reload=reload)


def _print_match_summary(result: MatchResult) -> None:
    if result.is_match:
        typer.echo(f"Match: {result.matched_cat_name} (confidence={result.confidence:.2f})")
    else:
        typer.echo(f"No match (closest similarity={result.confidence:.2f})")
    typer.echo(f"  {result.reasoning}")

    typer.echo("\nCandidates:")
    for evaluation in result.evaluations:
        typer.echo(f"  {evaluation.cat_name}: similarity={evaluation.similarity:.3f}")
        for feature in evaluation.matched_features:
            typer.echo(f"    + {feature}")
        for feature in evaluation.conflicts:
            typer.echo(f"    - {feature}")


if __name__ == "__main__":
    app()
