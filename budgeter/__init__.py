"""
Budgeter core: offline-first record sync and derived financial summaries.
"""

__version__ = "0.1.0"
