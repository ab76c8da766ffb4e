"""
Synlitics API - daily sales-export uploads for restaurant owners.
"""
__version__ = "0.1.0"
