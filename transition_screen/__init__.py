"""Transition Screen - greenwashing and DNSH screening for transition finance projects.

Combines a deterministic red-flag detector with LLM rubric evaluation
(four greenwashing dimensions plus a six-objective safeguard screen) and
blends the two into a single 0-20 risk penalty.
"""

__version__ = "0.1.0"
