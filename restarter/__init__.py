"""
Restarter - replaces a running network service with a fresh, detached instance.

Finds and kills a stale instance by command-line pattern, raises the
file-descriptor ceiling, and relaunches the service with its output
captured to a log file.
"""

__version__ = "0.1.0"
__author__ = "Philip Orange <git@philiporange.com>"
