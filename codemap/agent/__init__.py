"""Codemap generation agents.

Fast mode answers a query in one tool-calling conversation; Smart mode runs
the five-stage pipeline with per-trace deep dives. Both report progress
through an async ``EventSink``.
"""

from .fast import FastCodemapAgent
from .smart import SmartCodemapAgent
from .suggestions import generate_suggestions

__all__: list[str] = ["FastCodemapAgent", "SmartCodemapAgent", "generate_suggestions"]
