"""
Church cell-group management API.

FastAPI service for members, cells (small groups), leadership assignment,
daily prayer logging and PDF reports, backed by Postgres in production and
SQLite in development.
"""

__version__ = "0.1.0"
