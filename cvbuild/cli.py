"""
cvbuild command line interface

Commands:
    build    - Validate, convert and render a CV document
    validate - Validate a CV document against its schema
    convert  - Validate and convert a CV document to JSON (no rendering)
    schema   - Show the fields a schema declares

Exit codes:
    0 success, 1 validation errors, 2 conversion/render failure,
    3 schema or document not found

Examples:\n

    cvbuild build data/cv.toml --schema data/schema/cv.schema.yaml

    cvbuild build data/cv.toml -s data/schema/cv.schema.yaml -t cvbuild/contexts/rendering/templates/cv.typ

    cvbuild validate data/cv.toml -s data/schema/cv.schema.yaml

    cvbuild convert data/cv.toml -s data/schema/cv.schema.yaml -o outs/cv.json
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from cvbuild.contexts.templating.exceptions import (
    EXIT_CONVERSION_FAILED,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILED,
    CVBuildError,
)
from cvbuild.contexts.templating.schema import RecordSchema, load_schema
from cvbuild.contexts.templating.validator import UnknownFieldPolicy
from cvbuild.pipeline import build, convert, validate
from cvbuild.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("CVBUILD_LOGS_PATH", "outs/logs"))


class RendererChoice(str, Enum):
    typst = "typst"
    html = "html"


def display_path(path: Path) -> str:
    """Return path relative to the working directory for cleaner display."""
    try:
        return str(Path(path).resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


app = typer.Typer(
    help="Validate structured CV data against a schema, convert it to JSON and render it",
    add_completion=False,
    invoke_without_command=True,
)


SchemaOption = Annotated[
    Path,
    typer.Option(
        "--schema",
        "-s",
        help="Schema file (YAML)",
        envvar="CVBUILD_SCHEMA",
    ),
]

UnknownFieldsOption = Annotated[
    Optional[UnknownFieldPolicy],
    typer.Option(
        "--unknown-fields",
        "-u",
        help="Policy for fields the schema does not declare (default: CVBUILD_UNKNOWN_FIELDS)",
    ),
]


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _print_report_lines(report, include_warnings: bool = True) -> None:
    for issue in report.sorted():
        if issue.is_error:
            typer.secho(f"  {issue.format()}", fg=typer.colors.RED)
        elif include_warnings:
            typer.secho(f"  {issue.format()}", fg=typer.colors.YELLOW)


def _fail(error: CVBuildError) -> None:
    typer.secho(f"Error: {error}\n", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=error.exit_code)


def _config_error(error: ValueError) -> None:
    """Bad renderer or policy settings stop the command before any work."""
    typer.secho(f"Error: {error}\n", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=EXIT_CONVERSION_FAILED)


@app.command("build")
def build_command(
    document: Annotated[Path, typer.Argument(help="CV document (.toml, .yaml or .json)")],
    schema: SchemaOption,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory (default: CVBUILD_OUTPUT_PATH)"),
    ] = None,
    template: Annotated[
        Optional[Path],
        typer.Option("--template", "-t", help="Template file (default: packaged HTML template)"),
    ] = None,
    renderer: Annotated[
        Optional[RendererChoice],
        typer.Option("--renderer", "-r", help="Renderer (default: inferred from the template)"),
    ] = None,
    unknown_fields: UnknownFieldsOption = None,
    no_data: Annotated[
        bool,
        typer.Option("--no-data", help="Do not keep the converted JSON next to the artifact"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show every issue and the renderer output"),
    ] = False,
):
    """
    Validate, convert and render a CV document.

    Stops before writing anything if validation finds errors.

    Examples:\n

        $ cvbuild build data/cv.toml -s data/schema/cv.schema.yaml

        $ cvbuild build data/cv.toml -s data/schema/cv.schema.yaml -r typst -t cv.typ
    """
    typer.secho(f"\nBuilding: {document}", fg=typer.colors.BLUE, bold=True)
    typer.echo("")

    log_dir = LOGS_PATH / f"build_{now()}"
    try:
        result = build(
            document,
            schema,
            output_dir=output_dir,
            template=template,
            renderer=renderer.value if renderer else None,
            unknown_fields=unknown_fields,
            keep_data=not no_data,
            log_dir=log_dir,
            verbose=verbose,
        )
    except ValueError as e:
        _config_error(e)

    typer.echo("")
    if result.success:
        typer.secho("✓ Build succeeded", fg=typer.colors.GREEN, bold=True)
        if result.report is not None and result.report.warnings:
            typer.echo(f"  Warnings: {len(result.report.warnings)}")
            _print_report_lines(result.report)
        typer.echo(f"  Artifact: {display_path(result.artifact_path)}")
        if result.data_path:
            typer.echo(f"  Data: {display_path(result.data_path)}")
    else:
        typer.secho(
            f"✗ Build failed while {result.failed_state.value}", fg=typer.colors.RED, bold=True
        )
        if result.report is not None and not result.report.is_valid:
            _print_report_lines(result.report)
        else:
            typer.secho(f"  {result.error}", fg=typer.colors.RED)

    typer.echo(f"  Log: {display_path(log_dir / 'build.log')}")
    typer.echo("")

    raise typer.Exit(code=result.exit_code)


@app.command("validate")
def validate_command(
    document: Annotated[Path, typer.Argument(help="CV document (.toml, .yaml or .json)")],
    schema: SchemaOption,
    unknown_fields: UnknownFieldsOption = None,
):
    """
    Validate a CV document against a schema.

    Prints one 'path: problem' line per issue, sorted by field path, and exits
    non-zero if any error was found.

    Examples:\n

        $ cvbuild validate data/cv.toml -s data/schema/cv.schema.yaml

        $ cvbuild validate data/cv.toml -s data/schema/cv.schema.yaml -u error
    """
    try:
        report = validate(document, schema, unknown_fields=unknown_fields)
    except CVBuildError as e:
        _fail(e)
    except ValueError as e:
        _config_error(e)

    for line in report.format_lines():
        typer.echo(line)

    if report.is_valid:
        typer.secho(
            f"✓ {document.name} is valid ({len(report.warnings)} warnings)",
            fg=typer.colors.GREEN,
            err=True,
        )
    else:
        typer.secho(
            f"✗ {document.name}: {len(report.errors)} errors, {len(report.warnings)} warnings",
            fg=typer.colors.RED,
            err=True,
        )

    raise typer.Exit(code=EXIT_SUCCESS if report.is_valid else EXIT_VALIDATION_FAILED)


@app.command("convert")
def convert_command(
    document: Annotated[Path, typer.Argument(help="CV document (.toml, .yaml or .json)")],
    schema: SchemaOption,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output", "-o", help="Output JSON file (default: CVBUILD_OUTPUT_PATH/<name>.json)"
        ),
    ] = None,
    unknown_fields: UnknownFieldsOption = None,
):
    """
    Validate a CV document and write its JSON conversion without rendering.

    Examples:\n

        $ cvbuild convert data/cv.toml -s data/schema/cv.schema.yaml -o outs/cv.json
    """
    try:
        result = convert(
            document,
            schema,
            output_path=output,
            unknown_fields=unknown_fields,
            log_dir=LOGS_PATH / f"convert_{now()}",
        )
    except ValueError as e:
        _config_error(e)

    if result.success:
        typer.secho(f"✓ Converted: {display_path(result.data_path)}", fg=typer.colors.GREEN)
    elif result.report is not None and not result.report.is_valid:
        typer.secho("✗ Validation failed", fg=typer.colors.RED, bold=True)
        _print_report_lines(result.report, include_warnings=False)
    else:
        typer.secho(f"Error: {result.error}", fg=typer.colors.RED, err=True)

    raise typer.Exit(code=result.exit_code)


def _echo_record(record: RecordSchema, indent: int) -> None:
    pad = "  " * indent
    for spec in record.fields:
        marker = " (required)" if spec.required else ""
        typer.echo(f"{pad}{spec.name}: {spec.type.value}{marker}")
        if spec.record is not None:
            _echo_record(spec.record, indent + 1)


@app.command("schema")
def schema_command(
    schema: Annotated[Path, typer.Argument(help="Schema file (YAML)")],
):
    """
    Show the fields a schema declares, in declaration order.

    Examples:\n

        $ cvbuild schema data/schema/cv.schema.yaml
    """
    try:
        loaded = load_schema(schema)
    except CVBuildError as e:
        _fail(e)

    typer.secho(f"{loaded.name}", bold=True)
    _echo_record(loaded.root, indent=1)


if __name__ == "__main__":
    app()
