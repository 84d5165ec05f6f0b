"""Custom exceptions for the rendering context."""

from typing import List, Optional

from cvbuild.contexts.templating.exceptions import EXIT_CONVERSION_FAILED, CVBuildError


class RenderError(CVBuildError):
    """
    Raised when the external renderer fails.

    The renderer's own diagnostics are attached unchanged.

    Attributes:
        message: Error description
        renderer: Renderer name (e.g., 'typst', 'html')
        returncode: Exit status of the renderer process (None if it never ran)
        stdout: Captured standard output
        stderr: Captured standard error
        command: Command line that was run
    """

    exit_code = EXIT_CONVERSION_FAILED

    def __init__(
        self,
        message: str,
        renderer: Optional[str] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        command: Optional[List[str]] = None,
    ):
        self.renderer = renderer
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.command = command

        parts = [message]
        if returncode is not None:
            parts.append(f"Exit status: {returncode}")

        # Attach the tool's output verbatim
        diagnostics = "\n".join(s.strip() for s in (stderr, stdout) if s and s.strip())
        if diagnostics:
            parts.append(f"\nRenderer output:\n{diagnostics}")

        super().__init__("\n".join(parts))
        self.message = message
