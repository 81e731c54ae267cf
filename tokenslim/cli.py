"""Command line interface for tokenslim"""
import click
import logging
import sys
from typing import Optional

from . import __version__
from . import render
from .config import load_settings
from .errors import BatchAborted, CandidateListError, ConfigError, SessionInputError, WriteError
from .logbook import Logbook
from .metrics import MetricsEngine
from .oracle import get_oracle
from .orchestrator import BatchOrchestrator, exit_code
from .prompt import ConsolePrompt
from .scanner import Scanner, discover
from .validator import ProjectValidator

EXIT_ABORTED = 2


def _engine(settings) -> MetricsEngine:
    return MetricsEngine(Scanner(settings.encoding))


def _orchestrator(ctx, settings, prefetch: int = 1, show_progress: bool = True) -> BatchOrchestrator:
    def candidates():
        return discover(settings.source_path, settings.extensions, settings.exclude_dirs)

    return BatchOrchestrator(
        engine=_engine(settings),
        oracle=get_oracle(settings),
        candidates=candidates,
        validator=ProjectValidator(settings.validate_commands, cwd=settings.root, timeout=settings.validate_timeout),
        prompt=ConsolePrompt(),
        logbook=ctx.obj["logbook"],
        require_savings=settings.require_savings,
        prefetch=prefetch,
        on_start=render.file_header if show_progress else None,
        on_outcome=(lambda index, total, outcome: render.outcome_line(outcome)) if show_progress else None,
    )


@click.group()
@click.version_option(version=__version__)
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='YAML config file')
@click.option('--root', type=click.Path(file_okay=False), default='.', help='Project root directory')
@click.option('--verbose', is_flag=True, help='Log progress details')
@click.option('--log-json', is_flag=True, help='Stream session events as JSON lines to stderr')
@click.pass_context
def cli(ctx, config_path: Optional[str], root: str, verbose: bool, log_json: bool):
    """tokenslim - measure, rank and rewrite source files for token efficiency"""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    try:
        settings = load_settings(config_path, root)
    except ConfigError as e:
        click.echo(f"✗ Error loading configuration: {e}", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["logbook"] = Logbook(writer=Logbook.json_writer() if log_json else None)


@cli.command()
@click.argument('n', type=click.IntRange(min=1), default=10)
@click.pass_context
def top(ctx, n: int):
    """Show the N most token-heavy files"""
    settings = ctx.obj["settings"]
    try:
        stats = _engine(settings).scan(settings.source_path, settings.extensions, settings.exclude_dirs)
    except CandidateListError as e:
        click.echo(f"✗ Error scanning project: {e}", err=True)
        sys.exit(1)
    render.top_table(stats, n)


@cli.command()
@click.pass_context
def audit(ctx):
    """Token count and lines per file, with an efficiency grade"""
    settings = ctx.obj["settings"]
    try:
        stats = _engine(settings).scan(settings.source_path, settings.extensions, settings.exclude_dirs)
    except CandidateListError as e:
        click.echo(f"✗ Error scanning project: {e}", err=True)
        sys.exit(1)
    render.audit_table(stats)


@cli.command()
@click.argument('file', type=click.Path(dir_okay=False))
@click.option('--model', help='OpenRouter model (default: TOKENSLIM_MODEL or deepseek/deepseek-chat)')
@click.option('--validate', is_flag=True, help='Run validation after writing, rollback on failure')
@click.option('--yes', 'auto', is_flag=True, help='Accept the rewrite without prompting')
@click.pass_context
def rewrite(ctx, file: str, model: Optional[str], validate: bool, auto: bool):
    """AI-powered rewrite of a single file"""
    settings = ctx.obj["settings"]
    model = model or settings.model

    if not file.endswith(tuple(settings.extensions)):
        click.echo(f"✗ Only {', '.join(settings.extensions)} files are supported", err=True)
        sys.exit(1)

    click.echo(f"Sending {file} to {model} via OpenRouter...")
    orchestrator = _orchestrator(ctx, settings, show_progress=False)
    try:
        outcome = orchestrator.rewrite_one(file, model, auto_accept=auto, validate=validate)
    except SessionInputError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    except WriteError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(EXIT_ABORTED)

    render.outcome_line(outcome)
    sys.exit(exit_code(outcome))


@cli.command()
@click.argument('n', type=click.IntRange(min=1), default=5)
@click.option('--model', help='OpenRouter model (default: TOKENSLIM_MODEL or deepseek/deepseek-chat)')
@click.option('--validate', is_flag=True, help='Run validation after each rewrite, rollback on failure')
@click.option('--auto', is_flag=True, help='Auto-accept rewrites without prompting')
@click.option('--prefetch', type=click.IntRange(min=1), default=1, help='Oracle calls in flight ahead of the commit loop')
@click.pass_context
def batch(ctx, n: int, model: Optional[str], validate: bool, auto: bool, prefetch: int):
    """Bulk AI-powered rewrite of the most token-heavy files"""
    settings = ctx.obj["settings"]
    model = model or settings.model

    orchestrator = _orchestrator(ctx, settings, prefetch=prefetch)
    render.batch_banner(n, model, auto, validate)

    try:
        summary = orchestrator.run(n, model, auto_accept=auto, validate=validate)
    except CandidateListError as e:
        click.echo(f"✗ Error reading candidate files: {e}", err=True)
        sys.exit(1)
    except BatchAborted as e:
        render.summary_line(e.summary)
        click.echo(f"✗ {e}: {e.cause}", err=True)
        sys.exit(EXIT_ABORTED)

    render.summary_line(summary)


@cli.group()
def config():
    """Configuration management"""
    pass


@config.command()
@click.pass_context
def show(ctx):
    """Show effective configuration"""
    settings = ctx.obj["settings"]
    click.echo("Current Configuration")
    click.echo("=" * 40)
    for key, value in settings.as_dict().items():
        if isinstance(value, tuple):
            value = ", ".join(value)
        click.echo(f"{key}: {value if value is not None else 'Not set'}")


if __name__ == '__main__':
    cli()
