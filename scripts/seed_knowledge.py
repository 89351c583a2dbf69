#!/usr/bin/env python3
"""Seed a tenant and its FAQ entries into the database and vector index.

Reads a JSON file of the form:

    {
      "tenant": {"handle": "alice", "email": "alice@example.com",
                 "first_name": "Alice", "last_name": "Liddell", "bio": "..."},
      "entries": [{"question": "...", "answer": "..."}, ...]
    }

Each entry is written the same way the FAQ editor writes it: the row is
inserted with a client-side UUID, the question and answer are embedded
together, and the vector is upserted under the same id with the owner's
tenant_id in its payload.

Usage:
    python scripts/seed_knowledge.py data/knowledge/sample_tenant.json
    python scripts/seed_knowledge.py data/knowledge/sample_tenant.json --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import uuid
from pathlib import Path

# Ensure project root is on sys.path so we can import src modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

logger = logging.getLogger(__name__)


def _load_seed_file(path: Path) -> dict:
    """Load and minimally validate the seed JSON file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    tenant = data.get("tenant") or {}
    if not tenant.get("handle") or not tenant.get("email"):
        raise ValueError("Seed file must define tenant.handle and tenant.email")
    entries = data.get("entries") or []
    for i, entry in enumerate(entries):
        if not entry.get("question", "").strip() or not entry.get("answer", "").strip():
            raise ValueError(f"Entry {i} is missing a question or answer")
    return data


async def seed(seed_file: str, dry_run: bool = False) -> None:
    """Create the tenant (if missing) and index every entry.

    Args:
        seed_file: Path to the JSON seed file.
        dry_run: If True, only report what would be written.
    """
    from sqlalchemy import select

    from src.app.core.database import close_db, get_session, init_db
    from src.app.models.knowledge import KnowledgeEntryModel
    from src.app.models.tenant import Tenant
    from src.app.services.knowledge_store import KnowledgeStore
    from src.knowledge.config import KnowledgeBaseConfig
    from src.knowledge.embeddings import EmbeddingService, entry_text
    from src.knowledge.models import EntryId, TenantId
    from src.knowledge.vector_index import QdrantVectorIndex

    path = Path(seed_file)
    if not path.is_file():
        print(f"Error: seed file does not exist: {path}")
        sys.exit(1)

    data = _load_seed_file(path)
    tenant_data = data["tenant"]
    entries = data.get("entries", [])

    print(f"Tenant: {tenant_data['handle']} ({tenant_data['email']})")
    print(f"Entries: {len(entries)}")
    for entry in entries:
        print(f"  Q: {entry['question']}")

    if dry_run:
        print("\n[DRY RUN] Nothing was written.")
        return

    config = KnowledgeBaseConfig()
    embedder = EmbeddingService(config)
    index = QdrantVectorIndex(config)
    await init_db()
    await index.initialize_collection()

    written = 0
    try:
        async for session in get_session():
            result = await session.execute(
                select(Tenant).where(Tenant.handle == tenant_data["handle"])
            )
            tenant = result.scalar_one_or_none()
            if tenant is None:
                tenant = Tenant(
                    id=uuid.uuid4(),
                    handle=tenant_data["handle"],
                    email=tenant_data["email"],
                    first_name=tenant_data.get("first_name", ""),
                    last_name=tenant_data.get("last_name", ""),
                    bio=tenant_data.get("bio"),
                )
                session.add(tenant)
                await session.commit()
                print(f"\nCreated tenant {tenant.handle} ({tenant.id})")

            entry_ids: list[uuid.UUID] = []
            for entry in entries:
                row = KnowledgeEntryModel(
                    id=uuid.uuid4(),
                    tenant_id=tenant.id,
                    question=entry["question"].strip(),
                    answer=entry["answer"].strip(),
                )
                session.add(row)
                entry_ids.append(row.id)
            await session.commit()

        store = KnowledgeStore(session_factory=get_session)
        stored = await store.get_by_ids(
            [EntryId(i) for i in entry_ids], TenantId(tenant.id)
        )
        for stored_entry in stored:
            vector = await embedder.embed(entry_text(stored_entry.question, stored_entry.answer))
            await index.upsert_entry(stored_entry, vector)
            written += 1
    finally:
        await index.close()
        await close_db()

    print(f"\nIndexed {written} of {len(entries)} entries for {tenant_data['handle']}.")
    if written != len(entries):
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Seed a tenant's FAQ entries into the database and vector index.",
    )
    parser.add_argument("seed_file", help="Path to the JSON seed file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be written without touching the database or index",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(name)s %(levelname)s: %(message)s")

    asyncio.run(seed(args.seed_file, args.dry_run))


if __name__ == "__main__":
    main()
