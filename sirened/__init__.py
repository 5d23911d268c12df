"""
Sirened - book cataloging and social reading backend.
"""

__version__ = "1.0.0"
