"""Export job CLI commands: process, sweep, reap, list, regenerate jobs and check storage."""

import asyncio
import uuid
from datetime import timedelta

import typer

export_app = typer.Typer()


def _parse_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Not a valid UUID: {value}") from exc


@export_app.command("process")
def export_process(
    job_id: str = typer.Argument(..., help="Export job ID"),
) -> None:
    """Process one pending export job now."""
    ok = asyncio.run(_process_impl(_parse_uuid(job_id)))
    if not ok:
        raise typer.Exit(code=1)


async def _process_impl(job_id: uuid.UUID) -> bool:
    from sis_api.core.config import get_settings
    from sis_api.core.database import engine_scope
    from sis_api.core.dependencies import get_export_storage
    from sis_api.services.export_processor import ExportProcessingError, process_export_job

    settings = get_settings()
    async with engine_scope(settings.database_url, schema=settings.database_schema) as factory, factory() as session:
        try:
            result = await process_export_job(
                session,
                job_id,
                storage=get_export_storage(settings),
                max_rows=settings.export_pdf_max_rows,
            )
        except ExportProcessingError as exc:
            typer.echo(f"Export job {job_id} failed: {exc}", err=True)
            return False
    typer.echo(f"Export job {result.export_job_id} completed")
    typer.echo(f"  File path:  {result.file_path}")
    typer.echo(f"  File size:  {result.file_size_bytes} bytes")
    return True


@export_app.command("process-pending")
def export_process_pending(
    limit: int | None = typer.Option(None, "--limit", min=1, help="Maximum jobs to attempt"),
) -> None:
    """Process every pending export job, oldest first."""
    asyncio.run(_process_pending_impl(limit))


async def _process_pending_impl(limit: int | None) -> None:
    from sis_api.core.config import get_settings
    from sis_api.core.database import engine_scope
    from sis_api.services.export_processor import process_pending_jobs

    settings = get_settings()
    async with engine_scope(settings.database_url, schema=settings.database_schema) as factory:
        sweep = await process_pending_jobs(settings=settings, session_factory=factory, limit=limit)
    typer.echo(f"Attempted: {sweep.attempted}")
    typer.echo(f"Completed: {sweep.completed}")
    typer.echo(f"Not completed: {sweep.not_completed}")


@export_app.command("reap-stale")
def export_reap_stale(
    minutes: int | None = typer.Option(
        None, "--minutes", min=1, help="Processing age in minutes (default: EXPORT_STALE_AFTER_MINUTES)"
    ),
) -> None:
    """Fail export jobs stuck in processing."""
    asyncio.run(_reap_stale_impl(minutes))


async def _reap_stale_impl(minutes: int | None) -> None:
    from sis_api.core.config import get_settings
    from sis_api.core.database import engine_scope
    from sis_api.services.export_processor import fail_stale_jobs

    settings = get_settings()
    older_than = timedelta(minutes=minutes or settings.export_stale_after_minutes)
    async with engine_scope(settings.database_url, schema=settings.database_schema) as factory, factory() as session:
        count = await fail_stale_jobs(session, older_than=older_than)
    typer.echo(f"Failed {count} stale export job(s)")


@export_app.command("list")
def export_list(
    organization_id: str | None = typer.Option(None, "--organization", help="Organization ID"),
    status_filter: str | None = typer.Option(None, "--status", help="Filter by status"),
    export_type: str | None = typer.Option(None, "--type", help="Filter by export type"),
    page_size: int = typer.Option(50, "--page-size", min=1, help="Maximum jobs to show"),
) -> None:
    """List export jobs, newest first."""
    org = _parse_uuid(organization_id) if organization_id else None
    asyncio.run(_list_impl(org, status_filter, export_type, page_size))


async def _list_impl(
    organization_id: uuid.UUID | None,
    status_filter: str | None,
    export_type: str | None,
    page_size: int,
) -> None:
    from sis_api.core.config import get_settings
    from sis_api.core.database import engine_scope
    from sis_api.services.export_service import list_export_jobs

    settings = get_settings()
    async with engine_scope(settings.database_url, schema=settings.database_schema) as factory, factory() as session:
        jobs, total = await list_export_jobs(
            session,
            organization_id,
            export_type=export_type,
            status_filter=status_filter,
            page_size=page_size,
        )

    for job in jobs:
        line = f"{job.id}  {job.export_type:<18} {job.status:<10} {job.created_at:%Y-%m-%d %H:%M}"
        if job.error_message:
            line += f"  {job.error_message}"
        typer.echo(line)
    typer.echo(f"{len(jobs)} of {total} job(s)")


@export_app.command("regenerate")
def export_regenerate(
    job_id: str = typer.Argument(..., help="Export job ID to copy"),
    requested_by: str | None = typer.Option(None, "--requested-by", help="Profile ID (default: original requester)"),
) -> None:
    """Create a new pending job with an existing job's parameters."""
    requester = _parse_uuid(requested_by) if requested_by else None
    ok = asyncio.run(_regenerate_impl(_parse_uuid(job_id), requester))
    if not ok:
        raise typer.Exit(code=1)


async def _regenerate_impl(job_id: uuid.UUID, requested_by: uuid.UUID | None) -> bool:
    from sis_api.core.config import get_settings
    from sis_api.core.database import engine_scope
    from sis_api.services.export_service import get_export_job, regenerate_export_job

    settings = get_settings()
    async with engine_scope(settings.database_url, schema=settings.database_schema) as factory, factory() as session:
        original = await get_export_job(session, job_id)
        if original is None:
            typer.echo(f"Export job {job_id} not found", err=True)
            return False
        job = await regenerate_export_job(
            session,
            job_id,
            requested_by=requested_by or original.requested_by,
        )
    typer.echo(f"Created export job {job.id} (pending)")
    return True


@export_app.command("check-storage")
def export_check_storage() -> None:
    """Verify the export bucket is reachable with the configured credentials."""
    from botocore.exceptions import BotoCoreError, ClientError

    from sis_api.core.config import get_settings
    from sis_api.core.dependencies import get_export_storage
    from sis_api.lib.storage import validate_config

    settings = get_settings()
    storage = get_export_storage(settings)
    try:
        validate_config(storage.client, storage.bucket)
    except (BotoCoreError, ClientError) as exc:
        reason = exc.__cause__ or exc
        typer.echo(f"Export bucket check failed: {reason}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Export bucket s3://{storage.bucket} is accessible")
