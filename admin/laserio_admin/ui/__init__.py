"""
UI package for the Laserio admin application.
"""

from .components import TkTaskRunner, UIConfig

__all__ = ("UIConfig", "TkTaskRunner")
