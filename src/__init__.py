"""
Dealflow - Core Package

This package contains the opportunity scoring and market signal engine of the
real estate investment CRM, including signal detection, mandate matching and
AI market summaries.
"""

__version__ = "0.1.0"
