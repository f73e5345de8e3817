#!/usr/bin/env python3
"""
SeqDoc Demo - Two inserts for the same customer.

Binds the COUNT protocol (max=10) on customerId, registers fields a, b, c
and inserts two documents for customer 1. The first lands at id 1, the
second at id 2.

By default the demo uses in-memory stores. Set SEQDOC_DEMO_LIVE=1 to run
against the Elasticsearch (and key-value backend) configured by SEQDOC_*
environment variables.
"""

import asyncio
import json
import os
import sys

from seqdoc_sdk import (
    InMemoryDocumentStore,
    InMemoryKeyValueStore,
    SeqDocClient,
    SeqDocError,
    Settings,
    create_client,
)
from seqdoc_sdk.logging_config import setup_logging

COLLECTION = "keyvalueindex"
KIND = "keyvaluetype"
COLUMNS = ["a", "b", "c"]


async def main() -> int:
    settings = Settings()
    setup_logging(settings)

    if os.environ.get("SEQDOC_DEMO_LIVE") == "1":
        client = create_client(settings)
        print(f"[Setup] Using Elasticsearch at {settings.es_url}")
    else:
        client = SeqDocClient(InMemoryDocumentStore(), InMemoryKeyValueStore())
        print("[Setup] Using in-memory stores")

    try:
        async with client:
            client.bind("serviceName", "COUNT", "customerId", max=10)
            client.register_fields(COLLECTION, KIND, COLUMNS)

            for body in ({"c": 1, "b": 1}, {"c": 1, "b": 2}):
                result = await client.insert_with_result(
                    COLLECTION, KIND, body, entity_value=1
                )
                print(
                    f"[Insert] counter={result.counter_key} id={result.id} "
                    f"document={json.dumps(result.document)}"
                )
                await asyncio.sleep(1)

            page = await client.list(COLLECTION, KIND, {"size": 10})
            print(f"[List] has_next={page.has_next} documents={len(page.transactions)}")
    except SeqDocError as e:
        print(f"[Error] {e.code}: {e.message}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
