"""Tests for chatbot prompt composition."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from src.knowledge.models import EntryId, KnowledgeEntry, TenantId, TenantProfile
from src.knowledge.prompts import (
    CONTEXT_HEADER,
    DEFAULT_OWNER_NAME,
    build_context_block,
    build_system_prompt,
    compose_messages,
)


def _profile(display_name: str = "Alice Liddell", bio: str | None = None) -> TenantProfile:
    return TenantProfile(
        tenant_id=TenantId(uuid.uuid4()),
        handle="alice",
        display_name=display_name,
        bio=bio,
    )


def _entry(question: str, answer: str) -> KnowledgeEntry:
    return KnowledgeEntry(
        id=EntryId(uuid.uuid4()),
        tenant_id=TenantId(uuid.uuid4()),
        question=question,
        answer=answer,
        created_at=datetime.now(timezone.utc),
    )


def test_grounded_prompt_uses_owner_name_and_bio():
    prompt = build_system_prompt(_profile(bio="Pastry chef in Lyon."), has_context=True)

    assert prompt.startswith("You are Alice Liddell's AI assistant.")
    assert "About Alice Liddell: Pastry chef in Lyon." in prompt
    assert "Use the context provided" in prompt


def test_no_context_prompt_is_apologetic():
    prompt = build_system_prompt(_profile(), has_context=False)

    assert "no relevant information" in prompt
    assert "Use the context provided" not in prompt
    assert "About" not in prompt


def test_blank_display_name_uses_default():
    prompt = build_system_prompt(_profile(display_name="  "), has_context=False)

    assert prompt.startswith(f"You are {DEFAULT_OWNER_NAME}'s AI assistant.")


def test_context_block_formats_pairs():
    block = build_context_block(
        [_entry("How do I reset?", "Click forgot."), _entry("Hours?", "9 to 5.")]
    )

    assert block == (
        f"{CONTEXT_HEADER}\n"
        "Q: How do I reset?\nA: Click forgot.\n\n"
        "Q: Hours?\nA: 9 to 5."
    )


def test_context_block_empty_for_no_entries():
    assert build_context_block([]) == ""


def test_compose_messages_with_context():
    messages = compose_messages(_profile(), [_entry("Q1", "A1")], "What is Q1?")

    assert [m["role"] for m in messages] == ["system", "system", "user"]
    assert messages[1]["content"].startswith(CONTEXT_HEADER)
    assert messages[2]["content"] == "What is Q1?"


def test_compose_messages_without_context_omits_block():
    messages = compose_messages(_profile(), [], "Anything?")

    assert [m["role"] for m in messages] == ["system", "user"]
    assert "no relevant information" in messages[0]["content"]
