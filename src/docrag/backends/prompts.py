"""Prompt templates shared by every backend.

All adapters send the same two messages: a system instruction restricting
the model to the supplied context and a user message carrying the context
and the question.
"""

from __future__ import annotations

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

GROUNDED_SYSTEM = """\
You are an assistant and you MUST answer exclusively using the context below.
If the answer is not present in the context, say that it is not available.
"""

GROUNDED_USER = """\
CONTEXT:
{context}

QUESTION:
{question}

Answer clearly, in the language the question was asked in.
"""

_ROLES = {"system": "system", "human": "user", "ai": "assistant"}


def build_chat_messages(question: str, context: str) -> list[BaseMessage]:
    """Build the grounded-answer prompt."""
    return [
        SystemMessage(content=GROUNDED_SYSTEM),
        HumanMessage(content=GROUNDED_USER.format(context=context, question=question)),
    ]


def to_role_dicts(messages: list[BaseMessage]) -> list[dict[str, str]]:
    """Convert LangChain messages to ``{"role", "content"}`` dicts for raw HTTP APIs."""
    return [{"role": _ROLES.get(m.type, "user"), "content": str(m.content)} for m in messages]
