"""
Job Discovery - Gaming Industry Job Search, Matching and Alerts Engine

This package:
1. Searches several job boards concurrently and merges the results
2. Normalizes and deduplicates inconsistent job records
3. Scores jobs for gaming relevance and against a user profile
4. Tracks saved jobs and applications through their status lifecycle
5. Re-runs saved searches as alerts and keeps a notification log
"""

__version__ = "1.0.0"
__author__ = "Job Discovery"
