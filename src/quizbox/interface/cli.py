"""quizbox CLI — study, inspect and merge Leitner quiz data."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from quizbox.application.config import resolve_config
from quizbox.domain.cards import LeitnerMergePolicy
from quizbox.domain.content import Question
from quizbox.domain.errors import InvalidInputError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="quizbox: Leitner-box quiz trainer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage quizbox configuration.")
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

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def log_level_for(verbose: int) -> int:
    return LOG_LEVELS.get(max(0, verbose), logging.DEBUG)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding the snapshot files.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only show warnings.")] = False,
):
    """Global settings for quizbox."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["verbose_bonus"] = verbose
    ctx.obj["quiet"] = quiet


def _resolve(ctx: typer.Context):
    obj = ctx.obj or {}
    config = resolve_config({"data_dir": obj.get("data_dir")})
    config.verbose = 0 if obj.get("quiet") else config.verbose + obj.get("verbose_bonus", 0)
    logging.getLogger().setLevel(log_level_for(config.verbose))
    return config


def _open(ctx: typer.Context):
    from quizbox.application.factory import build_app_context

    return build_app_context(_resolve(ctx))


# ---------------------------------------------------------------------------
# Study commands
# ---------------------------------------------------------------------------


@app.command("add-question")
def add_question(
    ctx: typer.Context,
    theme: Annotated[str, typer.Argument(help="Theme name.")],
    title: Annotated[str, typer.Argument(help="Question title, unique within the theme.")],
    text: Annotated[str, typer.Option(help="Question text.")] = "",
    answer: Annotated[
        list[str] | None, typer.Option("--answer", "-a", help="Answer option (repeatable).")
    ] = None,
    correct: Annotated[
        list[int] | None,
        typer.Option("--correct", "-c", help="Zero-based index of a correct answer (repeatable)."),
    ] = None,
    explanation: Annotated[str, typer.Option(help="Shown after answering.")] = "",
):
    """Create or replace a question."""
    answers = answer or []
    correct_idx = set(correct or [])
    try:
        question = Question(
            theme=theme,
            title=title,
            text=text,
            answers=answers,
            correct=[i in correct_idx for i in range(len(answers))],
            explanation=explanation,
        )
    except InvalidInputError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)

    app_ctx = _open(ctx)
    created = app_ctx.content.save_question(question)
    typer.secho(f"{'Added' if created else 'Updated'} {theme}:{title}", fg="green")


@app.command("delete-question")
def delete_question(
    ctx: typer.Context,
    theme: Annotated[str, typer.Argument(help="Theme name.")],
    title: Annotated[str, typer.Argument(help="Question title.")],
):
    """Delete a question and its Leitner card."""
    app_ctx = _open(ctx)
    if not app_ctx.content.delete_question(theme, title):
        typer.secho(f"No question {theme}:{title}", fg="yellow")
        raise typer.Exit(1)
    typer.secho(f"Deleted {theme}:{title}", fg="green")


@app.command()
def answer(
    ctx: typer.Context,
    theme: Annotated[str, typer.Argument(help="Theme name.")],
    title: Annotated[str, typer.Argument(help="Question title.")],
    correct: Annotated[
        bool, typer.Option("--correct/--wrong", help="Whether the answer was right.")
    ] = True,
    time_ms: Annotated[int, typer.Option("--time-ms", help="Answer time in milliseconds.")] = 0,
    user_answer: Annotated[str, typer.Option(help="Answer text given.")] = "",
):
    """Record one answer and reschedule the card."""
    app_ctx = _open(ctx)
    try:
        outcome = app_ctx.study.record_answer(
            theme, title, correct, time_ms, user_answer=user_answer
        )
    except InvalidInputError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)

    card = outcome.card
    typer.echo(
        f"{card.key}: box {card.box}, next review {card.next_review_date.isoformat()}"
    )
    if outcome.promoted:
        typer.secho("Promoted!", fg="green")
    for achievement in outcome.unlocked:
        typer.secho(f"Achievement unlocked: {achievement.value}", fg="cyan")


@app.command()
def due(
    ctx: typer.Context,
    theme: Annotated[str | None, typer.Option(help="Only this theme.")] = None,
    limit: Annotated[int | None, typer.Option(help="Show at most this many cards.")] = None,
):
    """List due cards, highest priority first."""
    app_ctx = _open(ctx)
    cards = app_ctx.leitner.due_cards(theme=theme)
    if not cards:
        typer.secho("No cards due.", fg="yellow")
        return
    for card in cards[:limit] if limit is not None else cards:
        typer.echo(f"[box {card.box}] {card.key} (due {card.next_review_date.isoformat()})")


@app.command()
def stats(
    ctx: typer.Context,
    theme: Annotated[str | None, typer.Option(help="Only this theme.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show level distribution and success rates."""
    app_ctx = _open(ctx)
    leitner, statistics = app_ctx.leitner, app_ctx.statistics

    themes = [theme] if theme else app_ctx.content.all_themes()
    per_theme = {}
    for name in themes:
        entry = statistics.theme_stats(name)
        per_theme[name] = {
            "questions": len(app_ctx.content.question_titles(name)),
            "attempts": entry.total_attempts if entry else 0,
            "success_rate": round(entry.success_rate, 3) if entry else 0.0,
        }

    data = {
        "levels": {str(k): v for k, v in leitner.level_distribution(theme).items()},
        "due": leitner.due_count(theme=theme),
        "mastered": leitner.mastered_count(),
        "total_reviews": leitner.total_reviews,
        "success_rate": round(statistics.overall_success_rate(), 3),
        "themes": per_theme,
    }

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo("Levels: " + "  ".join(f"{k}:{v}" for k, v in data["levels"].items()))
    typer.echo(f"Due: {data['due']}  Mastered: {data['mastered']}")
    typer.echo(f"Reviews: {data['total_reviews']}  Success rate: {data['success_rate']:.0%}")
    for name, entry in per_theme.items():
        typer.echo(
            f"  {name}: {entry['questions']} questions, {entry['attempts']} attempts, "
            f"{entry['success_rate']:.0%}"
        )


@app.command()
def themes(ctx: typer.Context):
    """List themes with their question counts."""
    app_ctx = _open(ctx)
    names = app_ctx.content.all_themes()
    if not names:
        typer.secho("No themes yet.", fg="yellow")
        return
    for name in names:
        typer.echo(f"{name} ({len(app_ctx.content.question_titles(name))} questions)")


# ---------------------------------------------------------------------------
# Maintenance commands
# ---------------------------------------------------------------------------


@app.command()
def merge(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Directory with snapshot files to import.")],
    policy: Annotated[
        LeitnerMergePolicy | None,
        typer.Option(help="Conflict rule for cards. Defaults to merge_policy in config."),
    ] = None,
    no_backup: Annotated[
        bool, typer.Option("--no-backup", help="Skip the pre-merge backup of local files.")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Merge another installation's data directory into this one."""
    app_ctx = _open(ctx)
    config = app_ctx.config
    try:
        report = app_ctx.merge_engine.merge_from_directory(
            path,
            leitner_policy=policy or config.merge_policy,
            backup_before=config.backup_before_merge and not no_backup,
        )
    except InvalidInputError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(2)

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return

    typer.echo(f"Themes: +{report.themes_added} ~{report.themes_updated}")
    typer.echo(f"Questions: +{report.questions_added} ~{report.questions_updated}")
    typer.echo(
        f"Statistics: {report.stats_questions_merged} questions, "
        f"{report.stats_themes_merged} themes, +{report.stats_results_added} results"
    )
    typer.echo(f"Cards: +{report.cards_added} ~{report.cards_updated}")
    typer.echo(f"Achievements: +{report.achievements_added}")
    if report.skipped:
        typer.secho(f"Skipped (unreadable): {', '.join(report.skipped)}", fg="yellow")


@app.command()
def prune(ctx: typer.Context):
    """Remove cards whose question no longer exists."""
    app_ctx = _open(ctx)
    removed = app_ctx.leitner.prune_orphans()
    typer.secho(f"Pruned {removed} orphan cards.", fg="green" if removed else None)


@app.command()
def backup(
    ctx: typer.Context,
    label: Annotated[str, typer.Option(help="Prefix for the backup file names.")] = "manual",
):
    """Back up all snapshot files."""
    from quizbox.application.factory import backup_all

    app_ctx = _open(ctx)
    handles = backup_all(app_ctx, label)
    if not handles:
        typer.secho("Nothing to back up.", fg="yellow")
        return
    for handle in handles:
        typer.echo(str(handle.path))


@app.command()
def upgrade(ctx: typer.Context):
    """Rewrite existing snapshot files in the current schema version."""
    app_ctx = _open(ctx)
    for service in (app_ctx.content, app_ctx.statistics, app_ctx.leitner, app_ctx.achievements):
        path = service.store.path
        if not path.exists():
            continue
        if service.persist():
            typer.echo(f"Upgraded {path.name}")
        else:
            typer.secho(f"Failed to rewrite {path.name}", fg="red")
            raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))
