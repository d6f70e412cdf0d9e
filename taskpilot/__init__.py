"""TaskPilot AI layer: governed, fault-tolerant access to a remote LLM."""

__version__ = "1.0.0"
