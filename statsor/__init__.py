"""
Statsor - team dashboard service

Plan-limited resource creation (teams, players, matches) and aggregate
statistics over locally persisted team and match collections.
"""

__version__ = "1.0.0"
