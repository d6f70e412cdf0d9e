"""
AI infrastructure: provider variants and the metrics sink.
"""
