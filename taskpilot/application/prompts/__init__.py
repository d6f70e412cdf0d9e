"""
Prompt templates and structured output models for every AI feature.
"""
