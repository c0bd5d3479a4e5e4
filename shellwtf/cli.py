"""Command-line interface for shellwtf."""

import logging
import os
import sys
from pathlib import Path

import click

from . import __version__
from .capture import make_recorder, record_session, transcript_path
from .config import MARKER_ENV, RECORDER_BACKENDS, ConfigError, load_config
from .context import code_files
from .engine import DebugEngine
from .llm import LLMClient, LLMError

INTEGRATION_FILE = Path(__file__).parent / "shell_integration.sh"

# Exit status a shell reports for a command it cannot find.
COMMAND_NOT_FOUND = 127


def _configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[wtf] %(message)s"))
    root = logging.getLogger("shellwtf")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config_or_fail():
    try:
        return load_config()
    except ConfigError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log debugging details to stderr')
@click.pass_context
def main(ctx, verbose):
    """wtf - explain the most recent error in this terminal session.

    Run without a command to send the recent session history to the LLM.
    """
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        ctx.invoke(explain)


@main.command(hidden=True)
def explain():
    """Explain the most recent error using the configured LLM."""
    config = _load_config_or_fail()
    engine = DebugEngine(config)
    try:
        code = engine.run()
    except LLMError as exc:
        click.echo(click.style(f'Error: {exc}', fg='red'), err=True)
        sys.exit(COMMAND_NOT_FOUND)
    sys.exit(code)


@main.command()
def prompt():
    """Print the prompt that `wtf` would send, without sending it."""
    config = _load_config_or_fail()
    text = DebugEngine(config).build_prompt()
    # Escape codes must survive a pipe, and undecodable names stay raw bytes.
    click.echo(text.encode("utf-8", "surrogateescape"), nl=False, color=True)


@main.command()
@click.option('--backend', type=click.Choice(RECORDER_BACKENDS), default=None,
              help='Recorder to use (default from config)')
@click.option('--shell', 'shell_cmd', default=None, help='Shell command to record (default $SHELL)')
def record(backend, shell_cmd):
    """Start a recorded shell session that `wtf` can read from."""
    import shlex

    config = _load_config_or_fail()
    existing = transcript_path()
    if existing is not None:
        click.echo(f'Already recording to {existing}', err=True)
        return

    shell = shlex.split(shell_cmd) if shell_cmd else config.shell
    recorder = make_recorder(backend or config.recorder_backend)
    sys.exit(record_session(shell, recorder))


@main.command()
@click.option('--install', is_flag=True, help='Add to ~/.bashrc or ~/.zshrc')
@click.option('--show', is_flag=True, help='Show the integration script path')
def shell(install, show):
    """Enable shell integration so every interactive shell is recorded.

    Usage:
      eval "$(wtf shell)"       # Enable in current shell
      wtf shell --install       # Add to ~/.bashrc or ~/.zshrc
      wtf shell --show          # Show the integration script path
    """
    if not INTEGRATION_FILE.exists():
        raise click.ClickException('shell_integration.sh not found; try reinstalling shellwtf')

    if show:
        click.echo(str(INTEGRATION_FILE))
        return

    if install:
        shell_env = os.environ.get('SHELL', '')
        if 'zsh' in shell_env:
            rc_file = Path.home() / '.zshrc'
        elif 'bash' in shell_env:
            rc_file = Path.home() / '.bashrc'
        else:
            click.echo(click.style('Error: Could not detect shell type', fg='red'), err=True)
            click.echo(f'Shell: {shell_env}')
            click.echo('Manually add to your rc file:')
            click.echo('  eval "$(wtf shell)"')
            sys.exit(1)

        source_line = 'eval "$(wtf shell)"'

        if rc_file.exists():
            content = rc_file.read_text(encoding='utf-8')
            if source_line in content or 'shell_integration.sh' in content:
                click.echo(click.style('Already installed!', fg='yellow'))
                click.echo(f'Found in: {rc_file}')
                return

        with open(rc_file, 'a', encoding='utf-8') as f:
            f.write('\n# shellwtf: record sessions for `wtf`\n')
            f.write(f'{source_line}\n')

        click.echo(click.style('Installed!', fg='green', bold=True))
        click.echo(f'Added to: {rc_file}')
        click.echo('Start a new terminal session to begin recording.')
        return

    # Output for eval: eval "$(wtf shell)"
    click.echo(f'source {INTEGRATION_FILE}')


@main.command()
def info():
    """Show shellwtf configuration and paths."""
    config = _load_config_or_fail()
    click.echo(click.style('shellwtf Configuration', fg='green', bold=True))
    click.echo()
    click.echo(f'Version: {__version__}')
    click.echo(f'Config file: {config.config_path}')
    llm_client = LLMClient(config.llm_command)
    click.echo(f'LLM command: {" ".join(config.llm_command)}')
    if llm_client.executable is None:
        click.echo(click.style(f'  {config.llm_command[0]} is not on PATH', fg='red'))
    click.echo(f'Recorder: {config.recorder_backend} ({" ".join(config.shell)})')
    click.echo(f'History: {config.context_lines} lines / {config.history_max_bytes} bytes')
    click.echo(f'Code context: {", ".join(config.code_extensions)} '
               f'({config.code_max_lines} lines / {config.code_max_bytes} bytes)')

    transcript = transcript_path()
    if transcript is None:
        click.echo(click.style(f'Transcript: not recording (${MARKER_ENV} unset)', fg='yellow'))
    elif transcript.exists():
        click.echo(f'Transcript: {transcript} ({transcript.stat().st_size} bytes)')
    else:
        click.echo(click.style(f'Transcript: {transcript} (missing)', fg='yellow'))

    files = code_files(os.getcwd(), config.code_extensions)
    click.echo(f'Source files here: {len(files)}')
    for name, size in files:
        click.echo(f'  {name} ({size} bytes)')


if __name__ == '__main__':
    main()
