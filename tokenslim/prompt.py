"""Accept/reject collaborators for proposed rewrites"""
from enum import Enum

import click

from .changeset import ChangeSet


class Decision(Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    SHOW_DIFF = "diff"


_ANSWERS = {
    "y": Decision.ACCEPT,
    "yes": Decision.ACCEPT,
    "n": Decision.REJECT,
    "no": Decision.REJECT,
    "d": Decision.SHOW_DIFF,
    "diff": Decision.SHOW_DIFF,
}


class AutoAccept:
    """Non-interactive mode: every successful proposal is accepted"""

    def confirm(self, change_set: ChangeSet) -> Decision:
        return Decision.ACCEPT

    def show_diff(self, change_set: ChangeSet) -> None:
        pass


class ConsolePrompt:
    """Asks on the terminal; anything but yes/diff counts as a rejection"""

    def confirm(self, change_set: ChangeSet) -> Decision:
        before, after = change_set.before_metrics, change_set.after_metrics
        click.echo(f"  Lines:  {before.line_count} → {after.line_count}")
        click.echo(f"  Tokens: {before.token_count} → {after.token_count}")
        if change_set.descriptions:
            click.echo("  Changes:")
            for description in change_set.descriptions:
                click.echo(f"    - {description}")
        answer = click.prompt("  Accept? [y/n/diff]", default="n", show_default=False)
        return _ANSWERS.get(answer.strip().lower(), Decision.REJECT)

    def show_diff(self, change_set: ChangeSet) -> None:
        click.echo("─" * 70)
        for line in change_set.diff().splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                click.secho(line, fg="green")
            elif line.startswith("-") and not line.startswith("---"):
                click.secho(line, fg="red")
            else:
                click.echo(line)
        click.echo("─" * 70)
