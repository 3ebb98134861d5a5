"""
Database clients for the handover engine.
"""

from .postgres_client import PostgresClient

__all__ = ['PostgresClient']
