"""Terminal rendering for tables, session lines and batch summaries"""
import click

from .metrics import ProjectStats, RankedFile, efficiency_grade, pct
from .session import Applied, Rejected, RolledBack, SessionOutcome, Skipped

SEPARATOR_WIDTH = 70

GRADE_MESSAGES = {
    "A+": "Excellent - extremely token-efficient",
    "A": "Great - lean and concise code",
    "B": "Good - some room for improvement",
    "C": "Fair - consider running `tokenslim batch --validate`",
}
DEFAULT_GRADE_MESSAGE = "Verbose - run `tokenslim batch --validate` to reduce tokens"

OUTCOME_COLORS = {
    Applied: "green",
    Rejected: "yellow",
    Skipped: "yellow",
    RolledBack: "red",
}


def separator(width: int = SEPARATOR_WIDTH) -> None:
    click.echo("─" * width)


def top_table(stats: ProjectStats, n: int) -> None:
    shown = stats.top(n)
    click.echo(f"Top {len(shown)} most token-heavy files:")
    click.echo()
    click.echo(f"{'#':<4} {'File':<50} {'Lines':>6} {'Tokens':>8} {'T/L':>6} {'% Tot':>7}")
    click.echo("-" * 84)
    for i, f in enumerate(shown, 1):
        m = f.metrics
        click.echo(
            f"{i:<4} {f.path:<50} {m.line_count:>6} {m.token_count:>8} "
            f"{m.ratio:>6.1f} {f.weight_fraction * 100:>6.1f}%"
        )
    top_tokens = sum(f.metrics.token_count for f in shown)
    click.echo("-" * 84)
    click.echo(
        f"Top {len(shown)} = {top_tokens} tokens "
        f"({pct(top_tokens, stats.total_tokens):.1f}% of {stats.total_tokens} total)"
    )


def audit_table(stats: ProjectStats) -> None:
    click.echo(f"{'File':<60} {'Lines':>6} {'Tokens':>8} {'T/L':>6}")
    click.echo("-" * 83)
    for f in sorted(stats.files, key=lambda f: f.path):
        m = f.metrics
        click.echo(f"{f.path:<60} {m.line_count:>6} {m.token_count:>8} {m.ratio:>6.1f}")
    click.echo("-" * 83)
    click.echo(f"{'Total':<60} {stats.total_lines:>6} {stats.total_tokens:>8} {stats.ratio:>6.1f}")
    click.echo()
    _, color, grade = efficiency_grade(stats.ratio)
    click.echo("Token efficiency: " + click.style(grade, fg=_terminal_color(color)) + f" ({stats.ratio:.1f} tokens/line)")
    click.echo(GRADE_MESSAGES.get(grade, DEFAULT_GRADE_MESSAGE))


def _terminal_color(badge_color: str) -> str:
    return {"brightgreen": "bright_green", "orange": "yellow"}.get(badge_color, badge_color)


def file_header(index: int, total: int, f: RankedFile) -> None:
    m = f.metrics
    click.echo(f"[{index}/{total}] {f.path}  ({m.token_count} tokens, {m.line_count} lines, T/L: {m.ratio:.1f})")


def outcome_line(outcome: SessionOutcome) -> None:
    """One-line classification plus reason for a finished session"""
    label = click.style(outcome.label, fg=OUTCOME_COLORS.get(type(outcome)), bold=True)
    click.echo(f"  {label}: {outcome.path} - {outcome.reason}")


def batch_banner(count: int, model: str, auto: bool, validate: bool) -> None:
    click.echo(f"Batch rewriting top {count} files via {model}...")
    if validate:
        click.echo("  Validation: build + tests after each rewrite, rollback on failure")
    if auto and not validate:
        click.secho("  WARNING: --auto without --validate accepts all rewrites blindly", fg="yellow")
    if auto:
        click.echo("  Auto-apply: skipping interactive prompts")
    click.echo()


def summary_line(summary) -> None:
    separator()
    click.echo(
        f"Batch complete: {summary.applied} applied, {summary.rejected} rejected, "
        f"{summary.skipped} skipped, {summary.rolled_back} rolled back "
        f"({summary.attempted} attempted)"
    )
    click.echo(f"Total saved: {summary.total_tokens_saved} tokens")
