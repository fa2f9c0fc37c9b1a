"""Testcontainers for integration testing."""

from .containers import (
    PostgresContainer,
    MinIOContainer,
    get_postgres_container,
    get_minio_container,
    stop_all,
)

__all__ = [
    "PostgresContainer",
    "MinIOContainer",
    "get_postgres_container",
    "get_minio_container",
    "stop_all",
]
