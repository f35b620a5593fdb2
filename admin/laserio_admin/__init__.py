"""
Laserio Admin: desktop administration client for the Laserio product catalog.
"""

__version__ = "1.0.0"
