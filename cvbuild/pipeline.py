"""
Build Orchestrator

Sequences schema/document loading, validation, conversion and rendering for
one document:

    idle -> loading -> validating -> converting -> rendering -> done
               |            |             |             |
               +------------+-------------+-------------+--> failed

A build fails fast at the validation gate: when the report holds errors no
conversion or rendering happens and nothing is written. Conversion and
rendering work inside a temporary directory; the artifact (and the converted
JSON) is moved to the output directory only after every step succeeded.

Every build loads its own schema and document; nothing is cached between
builds, so separate processes can build different variants concurrently.

Example:
    >>> result = build(Path("data/cv.toml"), Path("data/schema/cv.schema.yaml"))
    >>> if result.success:
    ...     print(result.artifact_path)
    ... else:
    ...     print(result.error)
"""

import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from dotenv import load_dotenv

from cvbuild.contexts.rendering.renderer import (
    DEFAULT_TEMPLATE,
    Renderer,
    get_renderer,
    infer_renderer,
    render_artifact,
)
from cvbuild.contexts.templating.converter import write_converted
from cvbuild.contexts.templating.document import load_document
from cvbuild.contexts.templating.exceptions import (
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILED,
    CVBuildError,
)
from cvbuild.contexts.templating.logger import (
    log_conversion_result,
    log_document_loaded,
    log_schema_loaded,
    log_validation_report,
)
from cvbuild.contexts.templating.schema import load_schema
from cvbuild.contexts.templating.validator import (
    UnknownFieldPolicy,
    ValidationReport,
    resolve_unknown_field_policy,
    validate_document,
)
from cvbuild.logger import log_build_result, log_build_start, log_state_change, setup_build_logger
from cvbuild.utils.event_logging import BUILD_EVENTS_FILENAME, log_build_event

load_dotenv()
OUTPUT_PATH = Path(os.getenv("CVBUILD_OUTPUT_PATH", "outs/results"))


class BuildState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    VALIDATING = "validating"
    CONVERTING = "converting"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


# Allowed transitions; converting -> done is the convert-only path
TRANSITIONS: Dict[BuildState, Set[BuildState]] = {
    BuildState.IDLE: {BuildState.LOADING},
    BuildState.LOADING: {BuildState.VALIDATING, BuildState.FAILED},
    BuildState.VALIDATING: {BuildState.CONVERTING, BuildState.FAILED},
    BuildState.CONVERTING: {BuildState.RENDERING, BuildState.DONE, BuildState.FAILED},
    BuildState.RENDERING: {BuildState.DONE, BuildState.FAILED},
    BuildState.DONE: set(),
    BuildState.FAILED: set(),
}


class ValidationFailedError(CVBuildError):
    """
    Raised inside a build when the validation report holds errors.

    The message lists every error as 'path: problem', sorted by field path.
    """

    exit_code = EXIT_VALIDATION_FAILED

    def __init__(self, report: ValidationReport):
        self.report = report
        lines = report.format_lines(include_warnings=False)
        super().__init__(f"Validation failed with {len(lines)} error(s):\n" + "\n".join(lines))
        self.message = f"Validation failed with {len(lines)} error(s)"


@dataclass
class BuildResult:
    """
    Result of a build (or convert-only) run.

    Attributes:
        success: Whether every step succeeded
        state: Final state (done or failed)
        document_name: Document identifier (file stem)
        artifact_path: Rendered artifact in the output directory (None unless rendered)
        data_path: Converted JSON in the output directory (None unless kept)
        report: Validation report (None if loading failed)
        error: Error that stopped the build (None on success)
        exit_code: Process exit code for this outcome
        history: States visited, in order
        time_s: Wall-clock duration
        log_dir: Directory holding build.log and build_events.jsonl, if logging was set up
    """

    success: bool
    state: BuildState
    document_name: str
    artifact_path: Optional[Path] = None
    data_path: Optional[Path] = None
    report: Optional[ValidationReport] = None
    error: Optional[CVBuildError] = None
    exit_code: int = EXIT_SUCCESS
    history: List[BuildState] = field(default_factory=list)
    time_s: float = 0.0
    log_dir: Optional[Path] = None

    @property
    def failed_state(self) -> Optional[BuildState]:
        """State the build was in when it failed (None on success)."""
        if self.success or len(self.history) < 2:
            return None
        return self.history[-2]


class Build:
    """
    One build of one document: a single-use state machine.

    Args:
        document_source: Document file (.toml, .yaml, .json)
        schema_source: Schema file (.yaml)
        unknown_fields: Policy for undeclared fields (default from CVBUILD_UNKNOWN_FIELDS)
        events_file: Optional JSON Lines file receiving one event per state change
    """

    def __init__(
        self,
        document_source: Path | str,
        schema_source: Path | str,
        unknown_fields: Optional[UnknownFieldPolicy | str] = None,
        events_file: Optional[Path] = None,
    ):
        self.document_source = Path(document_source)
        self.schema_source = Path(schema_source)
        self.unknown_fields = resolve_unknown_field_policy(unknown_fields)
        self.events_file = events_file
        self.state = BuildState.IDLE
        self.history: List[BuildState] = [BuildState.IDLE]

    @property
    def document_name(self) -> str:
        return self.document_source.stem

    def _transition(self, new_state: BuildState, **event_fields) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal build transition: {self.state.value} -> {new_state.value}")

        old_state = self.state
        self.state = new_state
        self.history.append(new_state)
        log_state_change(old_state.value, new_state.value)

        if self.events_file is not None:
            log_build_event(
                self.events_file,
                event_type="state_change",
                document=self.document_name,
                old_state=old_state.value,
                new_state=new_state.value,
                **event_fields,
            )

    def run(
        self,
        output_dir: Path,
        template: Optional[Path] = None,
        renderer: Optional[Renderer] = None,
        render: bool = True,
        keep_data: bool = True,
        data_output_path: Optional[Path] = None,
        verbose: bool = False,
    ) -> BuildResult:
        """
        Run the build.

        Args:
            output_dir: Directory receiving the artifact and converted JSON
            template: Template for the renderer
            renderer: Renderer instance (inferred from the template if omitted)
            render: Stop after conversion when False
            keep_data: Keep the converted JSON next to the artifact
            data_output_path: Explicit destination for the converted JSON
            verbose: Log every validation issue and the raw renderer output

        Returns:
            BuildResult; errors raised by the steps are captured in it
        """
        if self.state is not BuildState.IDLE:
            raise RuntimeError("A Build instance runs once; create a new one")

        start_time = time.time()
        report: Optional[ValidationReport] = None
        artifact_path: Optional[Path] = None
        data_path: Optional[Path] = None
        error: Optional[CVBuildError] = None

        log_build_start(self.document_source, self.schema_source)
        self._transition(BuildState.LOADING)

        try:
            schema = load_schema(self.schema_source)
            log_schema_loaded(schema)
            document = load_document(self.document_source, schema=schema)
            log_document_loaded(document)

            self._transition(BuildState.VALIDATING)
            report = validate_document(document, schema, self.unknown_fields)
            log_validation_report(document.name, report, verbose=verbose)
            if not report.is_valid:
                raise ValidationFailedError(report)

            self._transition(BuildState.CONVERTING, warnings=len(report.warnings))
            with tempfile.TemporaryDirectory(prefix="cvbuild_") as work:
                work_dir = Path(work)

                convert_start = time.time()
                converted = write_converted(document, schema, work_dir / f"{document.name}.json")
                log_conversion_result(document.name, converted, time.time() - convert_start)

                rendered = None
                if render:
                    self._transition(BuildState.RENDERING)
                    rendered = render_artifact(
                        converted, work_dir, template=template, renderer=renderer, verbose=verbose
                    )

                # Everything succeeded: publish results
                output_dir.mkdir(parents=True, exist_ok=True)
                if rendered is not None:
                    artifact_path = output_dir / rendered.artifact_path.name
                    shutil.move(str(rendered.artifact_path), str(artifact_path))
                if keep_data or not render:
                    data_path = data_output_path or output_dir / converted.name
                    data_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.move(str(converted), str(data_path))

            self._transition(
                BuildState.DONE,
                artifact_path=str(artifact_path) if artifact_path else None,
            )

        except CVBuildError as e:
            error = e
            self._transition(
                BuildState.FAILED,
                error_type=type(e).__name__,
                error=e.message,
                exit_code=e.exit_code,
            )

        result = BuildResult(
            success=error is None,
            state=self.state,
            document_name=self.document_name,
            artifact_path=artifact_path,
            data_path=data_path,
            report=report,
            error=error,
            exit_code=EXIT_SUCCESS if error is None else error.exit_code,
            history=list(self.history),
            time_s=time.time() - start_time,
            log_dir=self.events_file.parent if self.events_file is not None else None,
        )
        log_build_result(result)
        return result


def _resolve_renderer(
    template: Optional[Path], renderer: Optional[Renderer | str]
) -> tuple[Path, Renderer]:
    template = Path(template) if template is not None else DEFAULT_TEMPLATE
    if renderer is None:
        return template, infer_renderer(template)
    if isinstance(renderer, str):
        return template, get_renderer(renderer)
    return template, renderer


def build(
    document_source: Path | str,
    schema_source: Path | str,
    output_dir: Optional[Path | str] = None,
    template: Optional[Path | str] = None,
    renderer: Optional[Renderer | str] = None,
    unknown_fields: Optional[UnknownFieldPolicy | str] = None,
    keep_data: bool = True,
    log_dir: Optional[Path] = None,
    verbose: bool = False,
) -> BuildResult:
    """
    Run the full pipeline: load, validate, convert, render.

    Args:
        document_source: Document file (.toml, .yaml, .json)
        schema_source: Schema file (.yaml)
        output_dir: Directory for the artifact (default: CVBUILD_OUTPUT_PATH)
        template: Template file (default: packaged HTML template)
        renderer: Renderer instance or name ('typst', 'html'); inferred from the template if omitted
        unknown_fields: Policy for undeclared fields ('warn', 'error', 'ignore')
        keep_data: Keep the converted JSON next to the artifact
        log_dir: If given, write build.log and build_events.jsonl there
        verbose: Log every issue and the raw renderer output

    Returns:
        BuildResult with the artifact path on success, or the error and exit code

    Raises:
        ValueError: If the renderer name is unknown or cannot be inferred from the template,
            or the unknown-field policy is not recognised
    """
    unknown_fields = resolve_unknown_field_policy(unknown_fields)
    template, renderer = _resolve_renderer(template, renderer)
    output_dir = Path(output_dir) if output_dir is not None else OUTPUT_PATH

    events_file = None
    if log_dir is not None:
        setup_build_logger(
            Path(log_dir),
            document_source=Path(document_source),
            schema_source=Path(schema_source),
            renderer=renderer.name,
            verbose=verbose,
        )
        events_file = Path(log_dir) / BUILD_EVENTS_FILENAME

    return Build(document_source, schema_source, unknown_fields, events_file).run(
        output_dir=output_dir,
        template=template,
        renderer=renderer,
        render=True,
        keep_data=keep_data,
        verbose=verbose,
    )


def convert(
    document_source: Path | str,
    schema_source: Path | str,
    output_path: Optional[Path | str] = None,
    unknown_fields: Optional[UnknownFieldPolicy | str] = None,
    log_dir: Optional[Path] = None,
    verbose: bool = False,
) -> BuildResult:
    """
    Load, validate and convert a document without rendering it.

    Args:
        document_source: Document file
        schema_source: Schema file
        output_path: Destination JSON file (default: CVBUILD_OUTPUT_PATH/<stem>.json)
        unknown_fields: Policy for undeclared fields
        log_dir: If given, write build.log and build_events.jsonl there
        verbose: Log every validation issue

    Returns:
        BuildResult whose data_path is the written JSON on success

    Raises:
        ValueError: If the unknown-field policy is not recognised
    """
    unknown_fields = resolve_unknown_field_policy(unknown_fields)
    events_file = None
    if log_dir is not None:
        setup_build_logger(
            Path(log_dir),
            document_source=Path(document_source),
            schema_source=Path(schema_source),
            renderer="none",
            verbose=verbose,
        )
        events_file = Path(log_dir) / BUILD_EVENTS_FILENAME

    output_path = Path(output_path) if output_path is not None else None
    output_dir = output_path.parent if output_path is not None else OUTPUT_PATH

    return Build(document_source, schema_source, unknown_fields, events_file).run(
        output_dir=output_dir,
        render=False,
        data_output_path=output_path,
        verbose=verbose,
    )


def validate(
    document_source: Path | str,
    schema_source: Path | str,
    unknown_fields: Optional[UnknownFieldPolicy | str] = None,
) -> ValidationReport:
    """
    Load and validate a document (no conversion, no rendering).

    Returns:
        ValidationReport

    Raises:
        SchemaNotFoundError, SchemaParseError: If the schema cannot be loaded
        DocumentNotFoundError, DocumentParseError: If the document cannot be loaded
        ValueError: If the unknown-field policy is not recognised
    """
    unknown_fields = resolve_unknown_field_policy(unknown_fields)
    schema = load_schema(schema_source)
    document = load_document(document_source, schema=schema)
    return validate_document(document, schema, unknown_fields)
