"""
Application layer - ports, AI orchestration services, prompts and features.
"""
