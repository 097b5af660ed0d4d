"""
Application Tracker - Track saved jobs and application status.
"""

from .application_tracker import ApplicationTracker

__all__ = [
    "ApplicationTracker",
]
