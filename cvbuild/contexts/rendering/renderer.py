"""
Artifact Renderers

Adapters around the tools that turn converted JSON into the final artifact:

- TypstRenderer: runs the Typst compiler on a .typ template, passing the JSON
  path as the 'data' input (the template reads it with
  json(sys.inputs.at("data", default: "data.json")))
- HtmlRenderer: renders a Jinja2 template with the converted data

Both consume the converted JSON file only, never the schema.
"""

import json
import os
import re
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from cvbuild.contexts.rendering.exceptions import RenderError
from cvbuild.contexts.rendering.logger import (
    log_render_failure,
    log_render_output,
    log_render_result,
    log_render_start,
)

load_dotenv()

TYPST_COMPILER = os.getenv("TYPST_COMPILER", "typst")
RENDER_TIMEOUT_S = float(os.getenv("CVBUILD_RENDER_TIMEOUT", "120"))

TEMPLATES_PATH = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = TEMPLATES_PATH / "cv.html.jinja"

# Typst diagnostics look like "error: unknown variable: foo" / "warning: ..."
TYPST_ERROR_PATTERN = re.compile(r"^error: (.+)$", re.MULTILINE)
TYPST_WARNING_PATTERN = re.compile(r"^warning: (.+)$", re.MULTILINE)


@dataclass
class RenderResult:
    """
    Result of a successful render.

    Attributes:
        renderer: Renderer name
        artifact_path: Path to the rendered artifact
        stdout: Standard output from the renderer (empty for in-process renderers)
        stderr: Standard error from the renderer
        warnings: Parsed renderer warnings
    """

    renderer: str
    artifact_path: Path
    stdout: str = ""
    stderr: str = ""
    warnings: List[str] = field(default_factory=list)


class Renderer(ABC):
    """
    Base interface for artifact renderers.

    Implementations render a converted JSON data file with a template into an
    artifact file, raising RenderError with the tool's diagnostics on failure.
    """

    name: str = ""
    artifact_suffix: str = ""
    template_suffixes: tuple = ()

    @abstractmethod
    def render(self, data_path: Path, template_path: Path, output_path: Path) -> RenderResult:
        """
        Render data_path with template_path into output_path.

        Raises:
            RenderError: If rendering fails
        """


class TypstRenderer(Renderer):
    """Renders PDFs with the Typst compiler (one bounded subprocess call)."""

    name = "typst"
    artifact_suffix = ".pdf"
    template_suffixes = (".typ",)

    def __init__(self, compiler: str = TYPST_COMPILER, timeout: float = RENDER_TIMEOUT_S):
        self.compiler = compiler
        self.timeout = timeout

    def build_command(self, data_path: Path, template_path: Path, output_path: Path) -> List[str]:
        data_path = data_path.resolve()
        return [
            self.compiler,
            "compile",
            # Absolute data paths resolve against the project root
            "--root",
            data_path.anchor,
            "--input",
            f"data={data_path}",
            str(template_path.resolve()),
            str(output_path.resolve()),
        ]

    def render(self, data_path: Path, template_path: Path, output_path: Path) -> RenderResult:
        if not template_path.is_file():
            raise RenderError(f"Template not found: {template_path}", renderer=self.name)

        cmd = self.build_command(data_path, template_path, output_path)

        # Stale artifacts would hide a failed compile
        if output_path.exists():
            output_path.unlink()

        try:
            result = subprocess.run(
                cmd,
                cwd=data_path.parent,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",  # Replace invalid UTF-8 bytes instead of crashing
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise RenderError(
                f"Renderer executable not found: {self.compiler} (set TYPST_COMPILER)",
                renderer=self.name,
                command=cmd,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise RenderError(
                f"Renderer timed out after {self.timeout:g}s",
                renderer=self.name,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
                command=cmd,
            ) from e

        warnings = TYPST_WARNING_PATTERN.findall(result.stderr)

        if result.returncode != 0:
            errors = TYPST_ERROR_PATTERN.findall(result.stderr)
            summary = errors[0] if errors else "compilation failed"
            raise RenderError(
                f"Typst compilation failed: {summary}",
                renderer=self.name,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                command=cmd,
            )

        if not output_path.exists():
            raise RenderError(
                "Typst reported success but no artifact was written",
                renderer=self.name,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                command=cmd,
            )

        return RenderResult(
            renderer=self.name,
            artifact_path=output_path,
            stdout=result.stdout,
            stderr=result.stderr,
            warnings=warnings,
        )


class HtmlRenderer(Renderer):
    """Renders HTML from a Jinja2 template; the data is available as 'cv'."""

    name = "html"
    artifact_suffix = ".html"
    template_suffixes = (".jinja", ".j2", ".html", ".htm")

    def _environment(self, template_path: Path) -> Environment:
        return Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=select_autoescape(
                enabled_extensions=("html", "htm", "xml", "jinja", "j2"),
                default_for_string=True,
            ),
            keep_trailing_newline=True,
        )

    def render(self, data_path: Path, template_path: Path, output_path: Path) -> RenderResult:
        if not template_path.is_file():
            raise RenderError(f"Template not found: {template_path}", renderer=self.name)

        with open(data_path, "r", encoding="utf-8") as f:
            data: Dict[str, Any] = json.load(f)

        try:
            template = self._environment(template_path).get_template(template_path.name)
            html = template.render(cv=data)
        except TemplateError as e:
            raise RenderError(
                f"Template rendering failed: {e}",
                renderer=self.name,
                stderr=f"{type(e).__name__}: {e}",
            ) from e
        except Exception as e:
            # Expressions in the template run as Python (e.g., "{{ cv.name + 1 }}")
            raise RenderError(
                f"Template rendering failed: {type(e).__name__}: {e}",
                renderer=self.name,
                stderr=f"{type(e).__name__}: {e}",
            ) from e

        try:
            output_path.write_text(html, encoding="utf-8")
        except OSError as e:
            raise RenderError(
                f"Could not write artifact {output_path}: {e}",
                renderer=self.name,
                stderr=f"{type(e).__name__}: {e}",
            ) from e

        return RenderResult(renderer=self.name, artifact_path=output_path)


RENDERERS: Dict[str, Type[Renderer]] = {
    TypstRenderer.name: TypstRenderer,
    HtmlRenderer.name: HtmlRenderer,
}


def _as_text(output: Any) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def get_renderer(name: str) -> Renderer:
    """
    Instantiate a renderer by name.

    Raises:
        ValueError: If the name is not registered
    """
    if name not in RENDERERS:
        raise ValueError(f"Unknown renderer '{name}'. Available renderers: {list(RENDERERS)}")
    return RENDERERS[name]()


def infer_renderer(template_path: Path) -> Renderer:
    """
    Pick a renderer from a template's suffix (.typ -> typst, .jinja/.html -> html).

    Raises:
        ValueError: If no renderer handles the suffix
    """
    suffix = template_path.suffix.lower()
    for renderer_cls in RENDERERS.values():
        if suffix in renderer_cls.template_suffixes:
            return renderer_cls()
    raise ValueError(
        f"Cannot infer renderer for template '{template_path.name}'. "
        f"Pass a renderer explicitly: {list(RENDERERS)}"
    )


def render_artifact(
    data_path: Path,
    output_dir: Path,
    template: Optional[Path] = None,
    renderer: Optional[Renderer | str] = None,
    verbose: bool = False,
) -> RenderResult:
    """
    Render converted JSON into an artifact with logging.

    Args:
        data_path: Converted JSON file
        output_dir: Directory for the artifact (must exist)
        template: Template file (defaults to the packaged HTML template)
        renderer: Renderer instance or name (inferred from the template suffix if omitted)
        verbose: Log raw renderer output and every warning

    Returns:
        RenderResult pointing at output_dir / <data stem><artifact suffix>

    Raises:
        RenderError: If the renderer fails
        ValueError: If the renderer cannot be determined
    """
    template = Path(template) if template is not None else DEFAULT_TEMPLATE
    if renderer is None:
        renderer = infer_renderer(template)
    elif isinstance(renderer, str):
        renderer = get_renderer(renderer)

    output_path = output_dir / f"{data_path.stem}{renderer.artifact_suffix}"

    log_render_start(renderer.name, template, data_path)
    start_time = time.time()

    try:
        result = renderer.render(data_path, template, output_path)
    except RenderError as e:
        log_render_failure(e, time.time() - start_time)
        raise

    log_render_result(result, time.time() - start_time, verbose=verbose)
    if verbose:
        log_render_output(renderer.name, result.stdout, result.stderr)

    return result
