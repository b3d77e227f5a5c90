"""
Runs command for Creative Copycat CLI

List recent generation attempts.
"""

import asyncio
from typing import Optional

import click

from ..services.models import AttemptStatus


@click.command('runs')
@click.option('--limit', type=int, default=20, show_default=True, help='Maximum number of attempts')
@click.option('--status', type=click.Choice([s.value for s in AttemptStatus]), default=None,
              help='Only attempts with this status')
def runs_command(limit: int, status: Optional[str]):
    """
    List recent generation attempts.

    Example:
        copycat runs --status failed --limit 10
    """
    from ..services.attempt_service import AttemptService

    runs = asyncio.run(AttemptService().list_attempts(limit=limit, status=status))

    if not runs:
        click.echo("No attempts found")
        return

    click.echo(f"📊 {len(runs)} attempt(s)\n")
    for run in runs:
        line = f"{(run.get('started_at') or '')[:19]}  {run.get('status', ''):<9}  {run.get('copy_mode') or '-':<26}"
        if run.get('latency_ms') is not None:
            line += f"  {run['latency_ms']}ms"
        click.echo(line)
        if run.get('result_url'):
            click.echo(f"    → {run['result_url']}")
        if run.get('error_message'):
            click.echo(f"    ✗ {run['error_message']}")
