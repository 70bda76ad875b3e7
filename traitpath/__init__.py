"""
traitpath - trait-to-skill weighting and learning path generation.

Turns behavioral trait readings from spoken coaching assessments into a
ranked, prerequisite-aware set of skills to practice next.
"""

__version__ = "0.1.0"
