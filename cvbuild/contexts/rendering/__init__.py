"""
Rendering Context

Responsibilities:
- Hands converted JSON to an external renderer (Typst) or a Jinja2 HTML template
- Captures renderer diagnostics and surfaces them unchanged on failure
- Places the artifact in the requested output directory

Owns: Renderer invocation, artifact output
Never: Reads schemas or modifies document content
"""

from cvbuild.contexts.rendering.exceptions import RenderError
from cvbuild.contexts.rendering.renderer import (
    DEFAULT_TEMPLATE,
    HtmlRenderer,
    Renderer,
    RenderResult,
    TypstRenderer,
    get_renderer,
    infer_renderer,
    render_artifact,
)

__all__ = [
    "render_artifact",
    "get_renderer",
    "infer_renderer",
    "Renderer",
    "TypstRenderer",
    "HtmlRenderer",
    "RenderResult",
    "RenderError",
    "DEFAULT_TEMPLATE",
]
