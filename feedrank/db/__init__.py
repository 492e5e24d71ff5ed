"""Database layer."""

from .connection import Database, DatabaseConfig
from .init import SCHEMA_SQL, init_database, validate_connection
from .postgres import PostgresStore, parse_vector, to_vector_literal

__all__ = [
    "Database",
    "DatabaseConfig",
    "PostgresStore",
    "SCHEMA_SQL",
    "init_database",
    "parse_vector",
    "to_vector_literal",
    "validate_connection",
]
