"""
playcheck - deterministic playback verification.

Drives a playlist player on a simulated clock, captures everything its
renderers receive and compares the capture with golden dump files.
"""

__version__ = "0.1.0"
