"""Typer CLI root: ``sis-api serve`` plus the ``db`` and ``export`` groups."""

import typer

from sis_api.core.config import get_settings
from sis_api.core.logging import setup_logging

app = typer.Typer(name="sis-api", help="Student information system export pipeline CLI")


@app.callback()
def _main_callback() -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, log_json=settings.log_json)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Reload on source changes (development only)"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
    workers: int = typer.Option(1, "--workers", min=1, help="Worker processes (ignored with --reload)"),
) -> None:
    """Run the export API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "sis_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
    )


from sis_api.cli.db_cmd import db_app  # noqa: E402
from sis_api.cli.export_cmd import export_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database migration commands")
app.add_typer(export_app, name="export", help="Export job commands: process, sweep, reap, inspect")
