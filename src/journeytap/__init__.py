"""
JourneyTap - browser trace distillation and behavioral regression testing.
"""

__version__ = "0.1.0"
