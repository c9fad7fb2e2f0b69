#!/usr/bin/env python3
"""Example 2: Asynchronous batches with and without atomicity.

Demonstrates:
- ``AsyncRecordGateway`` over aiosqlite
- Best-effort batches (earlier rows stay committed when one fails)
- Atomic batches (``atomic=True`` rolls the whole batch back)
"""

import asyncio
import logging
import tempfile
from pathlib import Path

from sql_records import AsyncRecordGateway, DuplicateRecordError, Record

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")


class Tag(Record):
    Label: str


async def main() -> None:
    gateway = AsyncRecordGateway(Path(tempfile.mkdtemp()) / "tags.db")
    await gateway.execute("CREATE TABLE Tag (Id INTEGER PRIMARY KEY AUTOINCREMENT, Label TEXT UNIQUE)")

    batch = [Tag(Label="red"), Tag(Label="green"), Tag(Label="red"), Tag(Label="blue")]

    try:
        await gateway.insert_records(batch)
    except DuplicateRecordError as exc:
        print("Best-effort batch stopped:", exc)
    print("Committed:", [t.Label for t in await gateway.get_all_records(Tag)])

    await gateway.delete_records(Tag, [t.Id for t in await gateway.get_all_records(Tag)])

    try:
        await gateway.insert_records(batch, atomic=True)
    except DuplicateRecordError as exc:
        print("Atomic batch rolled back:", exc)
    print("Committed:", [t.Label for t in await gateway.get_all_records(Tag)])

    await gateway.insert_records([Tag(Label="red"), Tag(Label="blue")], atomic=True)
    newest = await gateway.get_last(Tag)
    renamed = await gateway.update_records([(Tag(Label="navy"), newest.Id)])
    print("Rows renamed:", renamed)

    await gateway.factory.dispose_async()


if __name__ == "__main__":
    asyncio.run(main())
