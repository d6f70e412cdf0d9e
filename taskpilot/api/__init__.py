"""
HTTP surface of the AI layer.
"""
