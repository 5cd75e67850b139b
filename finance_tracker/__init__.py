"""
Finance Tracker - Source Package

A small personal-finance backend: a JSON API over income and expense
transactions, stored in MongoDB when it is reachable and in memory
when it is not.

DESIGN PRINCIPLES:
1. The API always answers, even with the database down
2. Reject bad input, never silently correct it
3. Every storage event is logged
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
