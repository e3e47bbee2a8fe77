"""WSGI middleware, input validation, SQL where-clause and transaction helpers."""

__version__ = "0.1.0"