"""
cvbuild - structured CV data build pipeline

Turns a human-edited CV data file into a rendered artifact.

Architecture:
- Templating Context: schema loading, document loading, validation and
  conversion to the renderer-consumable JSON serialization
- Rendering Context: external renderer invocation and diagnostics
- Pipeline: build orchestration (load -> validate -> convert -> render)
"""

__version__ = "0.1.0"
