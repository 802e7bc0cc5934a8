#!/usr/bin/env python3
"""
Weekly day settings migration command.

Converts weekly_day_settings.enabled_days into enabled_categories on the
embedded (SQLite) or relational (PostgreSQL) database, then verifies it.

Usage:
    migrate-day-settings [--backend=embedded|relational] [--dry-run] [--verify-only]

Exit codes:
    0  success
    1  unrecoverable backend error (connection, rolled back batch, no URL)
    2  records failed or still need attention after the run
"""

import logging

import click

from app import create_app
from config import get_config
from models import db
from services import (
    BackendConnectionError,
    BackendUnavailable,
    MigrationRun,
    MigrationStateError,
    WriteFailure,
    describe_table,
    get_backend,
    infer_backend_name,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BACKEND_ERROR = 1
EXIT_NEEDS_ATTENTION = 2


def resolve_database(backend_name, database_url, settings):
    """
    Decide which backend and URL to use.

    An explicit URL wins; otherwise the backend name picks the configured
    URL; with neither, the configured default URL decides the backend.

    Returns:
        (backend_name, url); url is None if the chosen backend has no URL
    """
    if database_url:
        return backend_name or infer_backend_name(database_url), database_url
    if backend_name == 'relational':
        return backend_name, settings.RELATIONAL_DATABASE_URI
    if backend_name == 'embedded':
        return backend_name, settings.EMBEDDED_DATABASE_URI
    url = settings.SQLALCHEMY_DATABASE_URI
    return infer_backend_name(url), url


def print_status(backend):
    info = describe_table(backend)
    if not info['exists']:
        click.echo("weekly_day_settings table does not exist (fresh install?)")
        return
    click.echo("weekly_day_settings columns:")
    for column in info['columns']:
        click.echo(f"  {column}")
    click.echo("Record formats:")
    if not info['formats']:
        click.echo("  (no records)")
    for label, count in sorted(info['formats'].items()):
        click.echo(f"  {label}: {count}")
    click.echo(f"Backup table present: {'yes' if info['has_backup'] else 'no'}")


def run_migration(backend, dry_run=False, verify_only=False, reconvert=False,
                  sample=None, drop_legacy=False, week_starts_on=0):
    """Run the migration (or verification) and print the summary. Returns an exit code."""
    run = MigrationRun(backend, week_starts_on=week_starts_on)
    code = EXIT_OK
    try:
        if verify_only:
            summary = run.verify_only(sample=sample)
        else:
            summary = run.execute(dry_run=dry_run, prefer_legacy=reconvert, sample=sample)
        code = summary.exit_code
        if drop_legacy:
            try:
                run.cleanup()
            except MigrationStateError as e:
                logger.error(str(e))
                code = EXIT_NEEDS_ATTENTION
    except (BackendConnectionError, WriteFailure) as e:
        logger.error(f"Migration aborted: {e}")
        code = EXIT_BACKEND_ERROR
    click.echo(run.summary.render())
    if code == EXIT_BACKEND_ERROR:
        click.echo("Migration aborted, see errors above.", err=True)
    return code


@click.command('migrate-day-settings')
@click.option('--backend', type=click.Choice(['embedded', 'relational']), default=None,
              help='Database to migrate (default: inferred from the configured URL).')
@click.option('--database-url', default=None, help='Override the configured database URL.')
@click.option('--dry-run', is_flag=True, help='Convert and verify in memory without writing.')
@click.option('--verify-only', is_flag=True, help='Only verify the stored records.')
@click.option('--reconvert', is_flag=True,
              help='Re-derive categories from enabled_days even where they look complete.')
@click.option('--sample', type=click.IntRange(min=1), default=None,
              help='Verify only the first N records.')
@click.option('--status', 'show_status', is_flag=True, help='Show table columns and record formats.')
@click.option('--restore-backup', is_flag=True, help='Restore the table from the backup table.')
@click.option('--drop-legacy', is_flag=True,
              help='After a passing verification, drop the enabled_days column.')
@click.option('--config', 'config_name', default=None,
              help='Configuration name (development, production, testing).')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging.')
@click.pass_context
def migrate_day_settings(ctx, backend, database_url, dry_run, verify_only, reconvert, sample,
                         show_status, restore_backup, drop_legacy, config_name, verbose):
    """Migrate weekly day settings from enabled_days to enabled_categories."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )
    if dry_run and (verify_only or drop_legacy):
        raise click.UsageError('--dry-run cannot be combined with --verify-only or --drop-legacy')
    if sample is not None and drop_legacy:
        raise click.UsageError('--drop-legacy verifies every record and cannot be combined with --sample')
    if (show_status or restore_backup) and (dry_run or verify_only or drop_legacy or reconvert):
        raise click.UsageError('--status and --restore-backup must be used on their own')

    settings = get_config(config_name)
    backend_name, url = resolve_database(backend, database_url, settings)
    if not url:
        click.echo(f"No database URL configured for the {backend_name} backend "
                   f"(set DATABASE_URL or pass --database-url)", err=True)
        ctx.exit(EXIT_BACKEND_ERROR)

    app = create_app(config_name, SQLALCHEMY_DATABASE_URI=url)
    with app.app_context():
        storage = get_backend(backend_name, db.engine,
                              backup_table=app.config['DAY_SETTINGS_BACKUP_TABLE'])
        logger.info(f"Using {backend_name} backend: {storage!r}")
        try:
            if show_status:
                print_status(storage)
                code = EXIT_OK
            elif restore_backup:
                restored = storage.restore_backup()
                click.echo(f"Restored {restored} rows from {storage.backup_table}")
                code = EXIT_OK
            else:
                code = run_migration(
                    storage,
                    dry_run=dry_run,
                    verify_only=verify_only,
                    reconvert=reconvert,
                    sample=sample,
                    drop_legacy=drop_legacy,
                    week_starts_on=app.config['WEEK_STARTS_ON'],
                )
        except (BackendConnectionError, BackendUnavailable) as e:
            click.echo(f"Error: {e}", err=True)
            code = EXIT_BACKEND_ERROR
    ctx.exit(code)


def main():
    migrate_day_settings(prog_name='migrate-day-settings')


if __name__ == '__main__':
    main()
