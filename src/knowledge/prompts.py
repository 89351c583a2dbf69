"""Prompt composition for chatbot answers.

Builds the message sequence sent to the generation model: a system prompt in
the chatbot owner's voice, an optional context block with the retrieved
question/answer pairs, and the user's question. Pure functions only.
"""

from __future__ import annotations

from src.knowledge.models import KnowledgeEntry, TenantProfile

DEFAULT_OWNER_NAME = "the owner"

CONTEXT_HEADER = "Context from knowledge base:"

GROUNDED_SYSTEM_PROMPT = """You are {name}'s AI assistant. You are trained to answer questions based on {name}'s knowledge base.{about}

Use the context provided from the knowledge base to answer the user's question.
If the context contains relevant information, use it to provide a detailed and accurate answer in {name}'s voice and style.
If the context doesn't contain relevant information, politely let the user know that you don't have that information in {name}'s knowledge base, but you can try to help with general questions."""

NO_CONTEXT_SYSTEM_PROMPT = """You are {name}'s AI assistant.{about}

The user is asking a question, but there is no relevant information in {name}'s knowledge base.
Politely let the user know that you don't have specific information about that topic in {name}'s knowledge base, but you can try to help with general questions."""


def build_system_prompt(profile: TenantProfile, has_context: bool) -> str:
    """Personalized system prompt, confident with context, apologetic without."""
    name = profile.display_name.strip() or DEFAULT_OWNER_NAME
    bio = (profile.bio or "").strip()
    about = f"\n\nAbout {name}: {bio}" if bio else ""
    template = GROUNDED_SYSTEM_PROMPT if has_context else NO_CONTEXT_SYSTEM_PROMPT
    return template.format(name=name, about=about)


def build_context_block(entries: list[KnowledgeEntry]) -> str:
    """Format entries as Q/A pairs. Returns "" for no entries."""
    if not entries:
        return ""
    pairs = "\n\n".join(f"Q: {e.question}\nA: {e.answer}" for e in entries)
    return f"{CONTEXT_HEADER}\n{pairs}"


def compose_messages(
    profile: TenantProfile, entries: list[KnowledgeEntry], question: str
) -> list[dict]:
    """Build the generation message sequence.

    Args:
        profile: Chatbot owner profile used for personalization.
        entries: Retrieved entries, already bounded and ordered.
        question: The user's question.

    Returns:
        List of {"role", "content"} dicts: system prompt, context block
        (omitted when there are no entries), user question.
    """
    messages: list[dict] = [
        {"role": "system", "content": build_system_prompt(profile, bool(entries))},
    ]
    context = build_context_block(entries)
    if context:
        messages.append({"role": "system", "content": context})
    messages.append({"role": "user", "content": question})
    return messages
