"""
Shared utilities for cvbuild.

Common functionality used across contexts:
- Logger setup with provenance
- Timestamps
- Build event log
"""

from cvbuild.utils.timestamp import format_elapsed, now, now_exact

__all__ = ["now", "now_exact", "format_elapsed"]
