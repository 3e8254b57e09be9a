"""
DSD (Digital Smile Design) analysis and simulation pipeline.

Turns one clinical smile photo into a structured, rule-checked assessment
and a best-effort before/after simulation.
"""

__version__ = "1.0.0"
