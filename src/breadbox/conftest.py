# src/breadbox/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
Most tests run against MemoryBackend. PostgreSQL fixtures skip unless
DATABASE_URL points at a reachable server.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["BREADBOX_ENV"] = "test"

import psycopg
import pytest
import pytest_asyncio

from breadbox import db
from breadbox.backends.memory import MemoryBackend
from breadbox.backends.postgres import PostgresBackend
from breadbox.bread import TableBread
from breadbox.config import config

# =============================================================================
# Seed Data
# =============================================================================

PEOPLE_COLUMNS = ("id", "name", "description", "direction")

SEED_PEOPLE = [
    {"id": i, "name": f"Person {i}", "description": f"Description {i}",
     "direction": "left" if i % 2 == 1 else "right"}
    for i in range(1, 11)
] + [
    {"id": 11, "name": "there is foobar in this name", "description": "plain", "direction": "left"},
    {"id": 12, "name": "Person 12", "description": "there is foobar in this description", "direction": "right"},
    {"id": 13, "name": "Person 13", "description": "there is FOOBAR in this description", "direction": "left"},
]


def matching(predicate) -> list[dict]:
    """Seed rows satisfying predicate, in insertion order."""
    return [row for row in SEED_PEOPLE if predicate(row)]


# =============================================================================
# Memory Backend Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def memory_backend():
    """A MemoryBackend with seeded people and an empty pets table."""
    backend = MemoryBackend()
    backend.create_table("people", primary_key="id", columns=PEOPLE_COLUMNS)
    backend.create_table("pets", primary_key="id", columns=("id", "person_id", "name"))
    for row in SEED_PEOPLE:
        await backend.insert("people", row)
    return backend


@pytest.fixture
def people(memory_backend) -> TableBread:
    return TableBread(memory_backend, "people")


@pytest.fixture
def pets(memory_backend) -> TableBread:
    return TableBread(memory_backend, "pets")


@pytest.fixture
def backend_override(memory_backend):
    """Route every connection-string accessor to the memory backend."""
    db.set_backend_override(memory_backend)
    yield memory_backend
    db.clear_backend_override()


# =============================================================================
# PostgreSQL Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def pg_url():
    """
    Create the test tables once per session.

    Skips every PostgreSQL test when no database is configured or reachable.
    """
    if not config.database_url:
        pytest.skip("DATABASE_URL is not set")

    try:
        conn = psycopg.connect(config.database_url, connect_timeout=3)
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL is not reachable: {e}")

    with conn:
        with conn.cursor() as cur:
            cur.execute("DROP TABLE IF EXISTS breadbox_pets, breadbox_people")
            cur.execute("""
                CREATE TABLE breadbox_people (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255),
                    description TEXT,
                    direction VARCHAR(5) CHECK (direction IN ('left', 'right')),
                    score NUMERIC(6, 2)
                )
            """)
            cur.execute("""
                CREATE TABLE breadbox_pets (
                    id SERIAL PRIMARY KEY,
                    person_id INTEGER REFERENCES breadbox_people(id),
                    name VARCHAR(255)
                )
            """)

    yield config.database_url

    with psycopg.connect(config.database_url) as conn:
        conn.execute("DROP TABLE IF EXISTS breadbox_pets, breadbox_people")


@pytest_asyncio.fixture
async def pg_backend(pg_url):
    """
    A PostgresBackend over freshly seeded tables.

    Tables are truncated before each test so ids and rows are predictable.
    """
    with psycopg.connect(pg_url) as conn:
        with conn.cursor() as cur:
            cur.execute("TRUNCATE breadbox_pets, breadbox_people RESTART IDENTITY CASCADE")
            cur.executemany(
                """
                INSERT INTO breadbox_people (name, description, direction)
                VALUES (%s, %s, %s)
                """,
                [(r["name"], r["description"], r["direction"]) for r in SEED_PEOPLE],
            )

    backend = PostgresBackend(pg_url, pool_size=2)
    yield backend
    await backend.close()


@pytest.fixture
def pg_people(pg_backend) -> TableBread:
    return TableBread(pg_backend, "breadbox_people")


@pytest.fixture
def pg_pets(pg_backend) -> TableBread:
    return TableBread(pg_backend, "breadbox_pets")
