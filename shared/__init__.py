"""
Data structures shared by the processing core and its producers/consumers.
"""

from .models import Sample
from .window import Window

__all__ = ["Sample", "Window"]
