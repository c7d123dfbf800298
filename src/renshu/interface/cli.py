"""renshu CLI: plan, practice, logs, config and serve commands."""

import asyncio
import json
import logging
import random
import sys
from pathlib import Path
from typing import Annotated, Any

import typer

from renshu.application.config import AppConfig, resolve_config
from renshu.domain.models import Card, ItemKey, PracticeMode, Rating, SessionState, SessionStyle

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="renshu: dependency-aware kanji and vocabulary practice.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage renshu configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def _log_file(config: AppConfig) -> Path:
    return config.log_dir / "renshu.log"


def _attach_file_log(config: AppConfig) -> None:
    config.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = _log_file(config).resolve()
    pkg_logger = logging.getLogger("renshu")
    for existing in pkg_logger.handlers:
        if isinstance(existing, logging.FileHandler) and Path(existing.baseFilename) == log_file:
            return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    pkg_logger.addHandler(handler)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for renshu."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _resolve_with_overrides(ctx: typer.Context, **overrides: Any) -> AppConfig:
    config = resolve_config({**overrides, "verbose": ctx.obj.get("verbose")})
    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    return config


def _load_catalogs(deck: Path, library: Path | None):
    from renshu.domain.errors import DeckFormatError
    from renshu.infrastructure.catalog import load_deck

    try:
        lesson = load_deck(deck)
        extra = load_deck(library) if library else None
    except (DeckFormatError, OSError) as e:
        typer.secho(f"Could not load deck: {e}", fg="red", err=True)
        raise typer.Exit(1) from e
    logger.debug(f"Loaded deck {lesson.name} ({len(lesson)} items)")
    return lesson, extra


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


def _plan_dict(state: SessionState) -> dict[str, Any]:
    def keys(items) -> list[str]:
        return [str(k) for k in items]

    return {
        "cards": {
            str(key): {
                "scope": card.scope.value,
                "style": card.style.value,
                "disabled": card.is_disabled,
                "prompt": card.prompt,
            }
            for key, card in state.card_map.items()
        },
        "module_queue": keys(state.module_queue),
        "review_queue": keys(state.review_queue),
        "locked": sorted(keys(state.locked_keys)),
        "disabled": keys(k for k, c in state.card_map.items() if c.is_disabled),
        "dependencies": {str(k): keys(v) for k, v in state.dependency_map.items()},
        "unlocks": {str(k): keys(v) for k, v in state.unlocks_map.items()},
    }


@app.command()
def plan(
    ctx: typer.Context,
    deck: Annotated[Path, typer.Argument(help="Lesson deck (YAML).")],
    library: Annotated[
        Path | None, typer.Option(help="YAML catalog used for due review items.")
    ] = None,
    mode: Annotated[PracticeMode | None, typer.Option(help="Practice mode.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the session graph for a deck without practicing."""
    from renshu.application.factory import get_progress_repository
    from renshu.application.practice_service import PracticeService

    config = _resolve_with_overrides(ctx, practice_mode=mode)
    lesson, extra = _load_catalogs(deck, library)

    async def run() -> SessionState:
        repo = get_progress_repository(config)
        try:
            return await PracticeService(config, repo).build_state(lesson, library=extra)
        finally:
            await repo.close()

    state = asyncio.run(run())
    data = _plan_dict(state)

    if as_json:
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    typer.echo(f"Deck: {lesson.name} ({config.practice_mode.value})")
    typer.echo(f"Cards: {len(data['cards'])}")
    typer.echo(f"Module queue: {len(data['module_queue'])}")
    typer.echo(f"Review queue: {len(data['review_queue'])}")
    typer.echo(f"Locked: {len(data['locked'])}")
    if data["disabled"]:
        typer.secho(f"Disabled (not yet due): {', '.join(data['disabled'])}", fg="yellow")
    for key, deps in data["dependencies"].items():
        typer.echo(f"  {key} <- {', '.join(deps)}")


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------


def _ask_rating() -> Rating:
    while True:
        raw = typer.prompt("Rate 1=again 2=hard 3=good 4=easy")
        try:
            return Rating(int(raw))
        except ValueError:
            typer.secho("Enter a number from 1 to 4.", fg="yellow")


def _choices(card: Card, card_map: dict[ItemKey, Card], rng: random.Random) -> list[str]:
    correct = card.valid_answers[0] if card.valid_answers else ""
    pool = {
        other.valid_answers[0]
        for other in card_map.values()
        if other.key != card.key
        and other.item_type == card.item_type
        and other.valid_answers
        and other.valid_answers[0] not in card.valid_answers
    }
    options = rng.sample(sorted(pool), min(3, len(pool))) + [correct]
    rng.shuffle(options)
    return options


def _ask(card: Card, card_map: dict[ItemKey, Card], rng: random.Random) -> Rating:
    """Run one prompt for the card's current style and turn the result into a rating."""
    from renshu.application.prompts import check_answer

    typer.secho(f"\n[{card.style.value}] {card.prompt}", bold=True)

    if card.style == SessionStyle.MULTIPLE_CHOICE:
        options = _choices(card, card_map, rng)
        for i, option in enumerate(options, 1):
            typer.echo(f"  {i}. {option}")
        picked = typer.prompt("Choice", type=int)
        ok = 1 <= picked <= len(options) and options[picked - 1] in card.valid_answers
    elif card.style == SessionStyle.WRITE:
        ok = check_answer(card, typer.prompt("Answer"))
    else:
        typer.prompt("Press Enter to reveal", default="", show_default=False)
        typer.echo(f"  {', '.join(card.valid_answers)}")
        return _ask_rating()

    if ok:
        typer.secho("Correct!", fg="green")
        return Rating.GOOD
    typer.secho(f"Answer: {', '.join(card.valid_answers)}", fg="red")
    return Rating.AGAIN


def _introduce(card: Card) -> None:
    d = card.display
    typer.secho(f"\nNew {card.item_type.value}: {d.text}", fg="cyan", bold=True)
    if d.meanings:
        typer.echo(f"  Meanings: {', '.join(d.meanings)}")
    if d.readings:
        typer.echo(f"  Readings: {', '.join(d.readings)}")
    if d.meaning_mnemonic:
        typer.echo(f"  {d.meaning_mnemonic}")
    if d.reading_mnemonic:
        typer.echo(f"  {d.reading_mnemonic}")
    typer.prompt("Press Enter to continue", default="", show_default=False)


def _summarize_misses(missed: list[Card]) -> None:
    if not missed:
        typer.echo("No misses.")
        return
    typer.secho("Missed:", fg="red", bold=True)
    for card in missed:
        times = "time" if card.miss_count == 1 else "times"
        typer.echo(f"  {card.prompt}: {', '.join(card.valid_answers)} (missed {card.miss_count} {times})")


@app.command()
def practice(
    ctx: typer.Context,
    deck: Annotated[Path, typer.Argument(help="Lesson deck (YAML).")],
    library: Annotated[
        Path | None, typer.Option(help="YAML catalog used for due review items.")
    ] = None,
    review_only: Annotated[
        bool, typer.Option("--review-only", help="Practice due reviews only, no lesson.")
    ] = False,
    mode: Annotated[PracticeMode | None, typer.Option(help="Practice mode.")] = None,
    shuffle: Annotated[
        bool | None, typer.Option("--shuffle/--no-shuffle", help="Shuffle lesson order.")
    ] = None,
    prerequisites: Annotated[
        bool | None,
        typer.Option("--prerequisites/--no-prerequisites", help="Include kanji and radicals."),
    ] = None,
    reviews: Annotated[
        bool | None, typer.Option("--reviews/--no-reviews", help="Mix in due reviews.")
    ] = None,
):
    """[bold green]Practice[/bold green] a lesson deck interactively."""
    from renshu.application.factory import get_progress_repository, get_scheduler
    from renshu.application.practice_service import PracticeService

    config = _resolve_with_overrides(
        ctx,
        practice_mode=mode,
        shuffle=shuffle,
        enable_prerequisites=prerequisites,
        include_reviews=reviews,
    )
    lesson, extra = _load_catalogs(deck, library)
    _attach_file_log(config)
    rng = random.Random()

    async def run() -> list[Card]:
        repo = get_progress_repository(config)
        try:
            service = PracticeService(config, repo, get_scheduler(config), rng=rng)
            manager = await service.start_session(lesson, library=extra, review_only=review_only)

            while not manager.is_finished() and manager.get_active_queue():
                card = manager.get_current_card()
                if card.style == SessionStyle.INTRODUCTION:
                    _introduce(card)
                    manager.process_introduction_completion()
                    continue
                await manager.process_answer(_ask(card, manager.get_card_map(), rng))
                progress = manager.get_module_progress()
                typer.echo(f"  ({progress.done}/{progress.total} lesson items done)")

            await manager.drain()
            return manager.get_missed_cards()
        finally:
            await repo.close()

    missed = asyncio.run(run())
    typer.secho("Session complete.", fg="green")
    _summarize_misses(missed)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------


@app.command()
def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP session server."""
    import uvicorn

    from renshu.domain.constants import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT

    uvicorn.run(
        "renshu.server:app",
        host=host or DEFAULT_SERVER_HOST,
        port=port or DEFAULT_SERVER_PORT,
        reload=reload,
    )


@app.command()
def logs(
    lines: Annotated[int, typer.Option("--lines", "-n", help="Number of lines to show.")] = 20,
    path_only: Annotated[bool, typer.Option("--path", help="Print the log file path only.")] = False,
):
    """Show the end of the practice log."""
    config = resolve_config()
    log_file = _log_file(config)
    if path_only:
        typer.echo(str(log_file))
        return
    if not log_file.exists():
        typer.secho(f"No log yet at {log_file}", fg="yellow", err=True)
        raise typer.Exit(1)

    tail = log_file.read_text(encoding="utf-8").splitlines()[-lines:] if lines > 0 else []
    for line in tail:
        typer.echo(line)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    app()
