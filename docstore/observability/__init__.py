"""Observability: structured logging for docstore.

Uses structlog with JSON output for production and a console renderer for
development. Credentials in connection strings are redacted before rendering.
"""
