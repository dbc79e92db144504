"""CLI entry point for subportal."""

from __future__ import annotations

import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Optional

import click

from subportal import __version__
from subportal.config.settings import AppConfig, load_config
from subportal.utils.logging import configure_logging, get_logger
from subportal.utils.result import ExitCode, StorageError

DEFAULT_CONFIG = "./config"

# uvicorn only knows the long spelling of warning
UVICORN_LOG_LEVELS = {
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "warning": "warning",
    "error": "error",
}


class Context:
    """CLI context for sharing state between commands."""

    def __init__(
        self,
        config: AppConfig,
        log_level: str,
        log_format: str,
        dry_run: bool,
    ) -> None:
        self.config = config
        self.log_level = log_level
        self.log_format = log_format
        self.dry_run = dry_run
        self.logger = get_logger("cli")
        self._kv = None

    @property
    def kv(self):
        from subportal.storage import open_store

        if self._kv is None:
            self._kv = open_store(
                self.config.storage.backend,
                self.config.storage.data_file,
                self.config.storage.quota_bytes,
            )
        return self._kv


pass_context = click.make_pass_decorator(Context)


def output_json(data: dict) -> None:
    """Output JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def uvicorn_log_level(level: str) -> str:
    """Translate a configured level name into the one uvicorn accepts."""
    return UVICORN_LOG_LEVELS.get(level.lower(), "info")


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=False, path_type=Path),
    default=DEFAULT_CONFIG,
    help="Path to config directory",
)
@click.option(
    "--data-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Key-value store file (overrides config)",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warn", "error"], case_sensitive=False),
    default=None,
    help="Logging level (overrides config)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default=None,
    help="Log format (overrides config)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Show what would be done without executing",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path,
    data_file: Optional[Path],
    log_level: Optional[str],
    log_format: Optional[str],
    dry_run: bool,
) -> None:
    """
    Secure File Submission portal.

    Serves the gated submission form and the admin dashboard, and offers
    the same workflow from the command line.
    """
    result = load_config(config)
    if result.is_err():
        click.echo(str(result.unwrap_err()), err=True)
        ctx.exit(ExitCode.CONFIG_INVALID)
    app_config = result.unwrap()

    if data_file is not None:
        app_config = app_config.with_data_file(data_file)

    log_level = log_level or app_config.logging.level
    log_format = log_format or app_config.logging.format
    configure_logging(level=log_level, format_type=log_format)

    ctx.obj = Context(
        config=app_config,
        log_level=log_level,
        log_format=log_format,
        dry_run=dry_run,
    )


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Port (overrides config)")
@pass_context
def serve(ctx: Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the web application."""
    import uvicorn

    from subportal.web import create_app

    host = host or ctx.config.web.host
    port = port or ctx.config.web.port

    ctx.logger.info("serve_started", host=host, port=port)

    if ctx.dry_run:
        output_json({
            "status": "dry_run",
            "message": "Would start the web server",
            "host": host,
            "port": port,
            "storage": ctx.config.storage.backend,
            "log_level": uvicorn_log_level(ctx.log_level),
        })
        return

    app = create_app(ctx.config, kv=ctx.kv)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level(ctx.log_level))


@cli.command()
@click.argument("identifier")
@pass_context
def gate(ctx: Context, identifier: str) -> None:
    """Try an access ID against the entry gate."""
    from subportal.gate import AccessGate, GateEvent, GateState
    from subportal.utils.scheduling import AsyncioScheduler

    async def run_gate() -> dict:
        access_gate = AccessGate(ctx.config.gate, AsyncioScheduler())
        unlocked = asyncio.Event()

        def on_event(event: GateEvent, g: AccessGate) -> None:
            if event == GateEvent.TICK:
                click.echo(f"Locked for {g.lock_remaining_seconds} seconds", err=True)
            elif event in (GateEvent.UNLOCKED, GateEvent.UNMOUNTED):
                unlocked.set()

        access_gate.subscribe(on_event)
        try:
            outcome = await access_gate.submit_and_wait(identifier)
            summary = {
                "outcome": outcome.name if outcome else None,
                "message": access_gate.message,
            }
            if outcome == GateState.LOCKED:
                click.echo(access_gate.message, err=True)
                await unlocked.wait()
                summary["unlocked"] = access_gate.state == GateState.IDLE
            return summary
        finally:
            access_gate.unmount()

    routes = {
        "ACCEPTED": "/upload",
        "ADMIN_REDIRECT": "/admin-login",
    }
    summary = asyncio.run(run_gate())
    summary["navigate_to"] = routes.get(summary["outcome"])
    output_json(summary)


@cli.command()
@click.option("--id", "submitter_id", default="", help="Submitter ID")
@click.option("--name", "submitter_name", default="", help="Submitter name")
@click.option("--message", default="", help="Message")
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="File to describe (only its metadata is stored)",
)
@pass_context
def submit(
    ctx: Context,
    submitter_id: str,
    submitter_name: str,
    message: str,
    file_path: Optional[Path],
) -> None:
    """Store a submission as the upload form would."""
    from subportal.models import FileMetadata, SubmissionInput
    from subportal.storage import SubmissionStore
    from subportal.upload import SubmissionForm
    from subportal.utils.result import ValidationError
    from subportal.utils.scheduling import AsyncioScheduler

    metadata = None
    if file_path is not None:
        content_type, _ = mimetypes.guess_type(file_path.name)
        metadata = FileMetadata(
            name=file_path.name,
            content_type=content_type or "",
            size=file_path.stat().st_size,
        )

    values = SubmissionInput(
        submitter_id=submitter_id,
        submitter_name=submitter_name,
        message=message,
        file=metadata,
    )

    ctx.logger.info("submit_started", submitter_id=submitter_id, has_file=metadata is not None)

    if ctx.dry_run:
        output_json({
            "status": "dry_run",
            "message": "Would store submission",
            "missing": list(values.missing_fields()),
        })
        return

    async def run_form():
        form = SubmissionForm(
            SubmissionStore(ctx.kv),
            ctx.config.submission,
            AsyncioScheduler(),
        )
        try:
            return await form.submit_and_wait(values)
        finally:
            form.unmount()

    result = asyncio.run(run_form())

    if result.is_err():
        error = result.unwrap_err()
        output_json({"status": "error", "message": error.message})
        code = (
            ExitCode.VALIDATION_FAILED
            if isinstance(error, ValidationError)
            else ExitCode.STORAGE_FAILED
        )
        sys.exit(code)

    output_json({"status": "success", "submission": result.unwrap().to_dict()})


@cli.group()
def submissions() -> None:
    """Inspect stored submissions."""


@submissions.command("list")
@click.option("--search", default="", help="Case-insensitive search term")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format",
)
@pass_context
def list_submissions(ctx: Context, search: str, output_format: str) -> None:
    """List submissions, oldest first."""
    from subportal.admin import SubmissionEntry, filter_entries
    from subportal.storage import SubmissionStore

    entries = [
        SubmissionEntry(key=index, record=record)
        for index, record in enumerate(SubmissionStore(ctx.kv).list_all())
    ]
    visible = filter_entries(entries, search)

    if output_format == "json":
        output_json({
            "total": len(entries),
            "matched": len(visible),
            "submissions": [
                {"key": entry.key, **entry.record.to_dict()} for entry in visible
            ],
        })
        return

    click.echo(f"Submissions: {len(visible)} of {len(entries)}")
    click.echo("=" * 40)
    for entry in visible:
        record = entry.record
        attachment = record.file_name or "-"
        click.echo(
            f"[{entry.key}] {record.created_at}  {record.submitter_id}  "
            f"{record.submitter_name}  {attachment}"
        )


@submissions.command("show")
@click.argument("key", type=int)
@pass_context
def show_submission(ctx: Context, key: int) -> None:
    """Show one submission by its key (insertion index)."""
    from subportal.storage import SubmissionStore

    records = SubmissionStore(ctx.kv).list_all()
    if not 0 <= key < len(records):
        output_json({"status": "error", "message": f"No submission with key {key}"})
        sys.exit(ExitCode.GENERAL_ERROR)

    output_json({"key": key, **records[key].to_dict()})


@cli.group()
def admin() -> None:
    """Manage the admin session."""


@admin.command("login")
@click.argument("username")
@click.argument("password")
@pass_context
def admin_login(ctx: Context, username: str, password: str) -> None:
    """Log in with the fixed admin credentials."""
    from subportal.admin import AdminLogin, AdminSession
    from subportal.utils.scheduling import AsyncioScheduler

    login = AdminLogin(ctx.config.admin, AdminSession(ctx.kv), AsyncioScheduler())
    try:
        result = login.login(username, password)
    except StorageError as e:
        output_json({"status": "error", "message": str(e)})
        sys.exit(ExitCode.STORAGE_FAILED)

    if result.is_err():
        output_json({"status": "error", "message": result.unwrap_err().message})
        sys.exit(ExitCode.GUARD_LOGIN)

    output_json({"status": "success", "authenticated": True})


@admin.command("logout")
@pass_context
def admin_logout(ctx: Context) -> None:
    """Clear the admin session."""
    from subportal.admin import AdminSession

    AdminSession(ctx.kv).logout()
    output_json({"status": "success", "authenticated": False})


@cli.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format",
)
@pass_context
def status(ctx: Context, output_format: str) -> None:
    """Show current state."""
    from subportal.admin import AdminSession
    from subportal.storage import SubmissionStore

    status_data = {
        "storage": ctx.config.storage.backend,
        "data_file": str(ctx.config.storage.data_file),
        "submissions": SubmissionStore(ctx.kv).count(),
        "admin_authenticated": AdminSession(ctx.kv).is_authenticated(),
    }

    if output_format == "json":
        output_json(status_data)
    else:
        click.echo("Secure File Submission Status")
        click.echo("=" * 40)
        click.echo(f"Storage: {status_data['storage']} ({status_data['data_file']})")
        click.echo(f"Submissions: {status_data['submissions']}")
        click.echo(f"Admin logged in: {'yes' if status_data['admin_authenticated'] else 'no'}")


@cli.command()
@click.option("--submissions", "clean_submissions", is_flag=True, help="Delete stored submissions")
@click.option("--session", "clean_session", is_flag=True, help="Clear the admin session")
@click.option("--all", "clean_all", is_flag=True, help="Clear the whole store")
@pass_context
def clean(
    ctx: Context,
    clean_submissions: bool,
    clean_session: bool,
    clean_all: bool,
) -> None:
    """Clear stored state."""
    from subportal.admin import AdminSession
    from subportal.storage import SubmissionStore

    if ctx.dry_run:
        output_json({
            "status": "dry_run",
            "message": "Would clean store",
            "submissions": clean_submissions or clean_all,
            "session": clean_session or clean_all,
        })
        return

    cleaned = {"submissions": 0, "session": False}

    if clean_all:
        store = SubmissionStore(ctx.kv)
        cleaned["submissions"] = store.count()
        cleaned["session"] = AdminSession(ctx.kv).is_authenticated()
        ctx.kv.clear()
    else:
        if clean_submissions:
            store = SubmissionStore(ctx.kv)
            cleaned["submissions"] = store.count()
            store.clear()
        if clean_session:
            session = AdminSession(ctx.kv)
            cleaned["session"] = session.is_authenticated()
            session.logout()

    output_json({
        "status": "success",
        "cleaned": cleaned,
    })


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except Exception as e:
        logger = get_logger("cli")
        logger.error("cli_error", error=str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
