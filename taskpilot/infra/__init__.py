"""
Infrastructure layer - adapters for providers, metrics, data and config.
"""
