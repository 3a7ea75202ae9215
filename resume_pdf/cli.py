"""Command line entry point for exporting the résumé to PDF."""

from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from resume_pdf.config import settings
from resume_pdf.errors import ExportError
from resume_pdf.exporter import export_resume_to_pdf_sync
from resume_pdf.models import ExportJob, PrintOptions
from resume_pdf.utils.logging import setup_logging

app = typer.Typer(
    help="Print the locally served résumé page to PDF with headless Chrome",
    add_completion=False,
)


@app.command()
def export(
    url: Annotated[
        Optional[str],
        typer.Option("--url", "-u", help="Page to print (default: RESUME_PDF_SOURCE_URL)"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF path to write (default: RESUME_PDF_OUTPUT_PATH)"),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Page load timeout in seconds", min=0.1),
    ] = None,
    deadline: Annotated[
        Optional[float],
        typer.Option("--deadline", help="Abort the whole export after this many seconds", min=0.1),
    ] = None,
    no_background: Annotated[
        bool,
        typer.Option("--no-background", help="Leave out background colours and images"),
    ] = False,
    no_css_page_size: Annotated[
        bool,
        typer.Option("--no-css-page-size", help="Ignore CSS @page size and use Letter paper"),
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Log level (default: RESUME_PDF_LOG_LEVEL)"),
    ] = None,
    json_logs: Annotated[
        Optional[bool],
        typer.Option("--json-logs/--console-logs", help="Log format"),
    ] = None,
):
    """
    Export the résumé page to PDF.

    The site must already be served (e.g. `hugo serve`). With no options the
    configured URL is printed to the configured output path.
    """
    setup_logging(level=log_level, json_logs=json_logs)

    job = ExportJob.from_settings(settings)
    updates: dict = {
        "print_options": PrintOptions(
            print_background=not no_background,
            prefer_css_page_size=not no_css_page_size,
        )
    }
    if url is not None:
        updates["source_url"] = url
    if output is not None:
        updates["output_path"] = output.resolve()

    try:
        job = ExportJob.model_validate({**job.model_dump(), **updates})
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    try:
        result = export_resume_to_pdf_sync(job, deadline=deadline, navigation_timeout=timeout)
    except ExportError as e:
        typer.secho(
            f"Export failed at stage {e.stage.value}: {e.message}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    typer.echo(str(result.output_path))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
