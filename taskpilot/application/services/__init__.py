"""
AI orchestration services: governor, deadline wrapper, output parser and the
orchestrator that composes them.
"""

from .governor import CallGovernor
from .orchestrator import ModelOrchestrator
from .structured_output import extract_json, parse_structured
from .timeout import with_timeout

__all__ = [
    "CallGovernor",
    "ModelOrchestrator",
    "extract_json",
    "parse_structured",
    "with_timeout",
]
