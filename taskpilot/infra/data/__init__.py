"""
Domain data access adapters.
"""
