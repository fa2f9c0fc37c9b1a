"""Object storage module using aioboto3."""

from .object_store import ObjectStore

__all__ = ["ObjectStore"]
