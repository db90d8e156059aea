"""
RT Coverage Scheduler: day/night coverage engine for respiratory therapy teams.
Greedy round-robin drafting, availability resolution, and publish-gate validation.

The core is pure: it works on plain dataclasses and never touches the database.
"""

__version__ = "1.0.0"
