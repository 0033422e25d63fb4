from breadbox.backends.base import Backend, Row
from breadbox.backends.memory import MemoryBackend
from breadbox.backends.postgres import PostgresBackend

__all__ = ["Backend", "MemoryBackend", "PostgresBackend", "Row"]
