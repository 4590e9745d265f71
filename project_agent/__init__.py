"""Issue validation, digest generation and markdown-defined plugin agents for GitHub."""

__version__ = "0.1.0"
