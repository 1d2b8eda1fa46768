"""
BookNest
========
Reading progress and deadline reminder engine for a personal reading tracker.
"""

__version__ = "1.0.0"
