"""Minijob Calc - billing periods and earnings carry-over for capped part-time jobs."""

__version__ = "0.1.0"
