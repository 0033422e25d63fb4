"""Seed demo people and pets into the database, one transaction per owner."""
import asyncio

import psycopg

from breadbox import db
from breadbox.bread import TableBread
from breadbox.config import config

SCHEMA = """
    CREATE TABLE IF NOT EXISTS people (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) UNIQUE,
        direction VARCHAR(5)
    );
    CREATE TABLE IF NOT EXISTS pets (
        id SERIAL PRIMARY KEY,
        person_id INTEGER REFERENCES people(id),
        name VARCHAR(255)
    );
"""

OWNERS = [
    {"name": "Alice", "direction": "left", "pets": ["Rex", "Tom"]},
    {"name": "Bob foobar", "direction": "right", "pets": ["Fido"]},
    {"name": "Carol", "direction": "left", "pets": []},
]


async def seed() -> None:
    people = TableBread(config.require_database_url(), "people")
    pets = TableBread(config.require_database_url(), "pets")

    for owner in OWNERS:
        existing = await people.browse(filters=[{"field": "name", "value": owner["name"]}])
        if existing.records:
            print(f"Skipping {owner['name']} - already exists")
            continue

        async with await people.start_transaction() as tx:
            person = await people.in_transaction(tx).add(
                {"name": owner["name"], "direction": owner["direction"]}
            )
            for pet_name in owner["pets"]:
                await pets.in_transaction(tx).add({"person_id": person["id"], "name": pet_name})
        print(f"Created: {person['name']} (id={person['id']}) with {len(owner['pets'])} pets")


def main():
    with psycopg.connect(config.require_database_url()) as conn:
        conn.execute(SCHEMA)

    async def run():
        try:
            await seed()
        finally:
            await db.close_all()

    asyncio.run(run())


if __name__ == "__main__":
    main()
