"""Rapport: relationship workflow and atomic counter engine.

Governs status-bearing relationship records (connection requests,
introductions, mentor sessions, event registrations) and the shared
counters their transitions mutate.
"""

__version__ = "0.1.0"
