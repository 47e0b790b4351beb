"""codemap: answer questions about a codebase with traces of source locations."""

__version__ = "0.1.0"
