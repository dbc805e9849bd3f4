"""
Conversation history.

Turns are stored as a list of ``{"role", "content"}`` records on the
conversation. The reservation keeps a flattened, human readable transcript
(``Customer: ...`` / ``AI: ...`` lines) for staff; ``decode`` turns such a
transcript back into turns and is only used to migrate legacy rows.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

CUSTOMER_PREFIX = "Customer: "
AI_PREFIX = "AI: "
ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class Turn:
    role: str
    content: str

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.content}


def decode(raw: Optional[str]) -> List[Turn]:
    turns = []
    for line in (raw or "").split("\n"):
        if line.startswith(CUSTOMER_PREFIX):
            turns.append(Turn("user", line[len(CUSTOMER_PREFIX):]))
        elif line.startswith(AI_PREFIX):
            turns.append(Turn("assistant", line[len(AI_PREFIX):]))
        elif line.strip():
            # legacy rows without prefixes
            turns.append(Turn("user", line))
    return turns


def encode(prior_raw: Optional[str], customer_text: str, assistant_text: str) -> str:
    """
    Append one ``Customer:``/``AI:`` line pair.

    Texts are written as-is, so a multi-line message leaves continuation
    lines that ``decode`` reads back as extra customer turns. Only legacy
    migration and the staff transcript go through this format.
    """
    pair = f"{CUSTOMER_PREFIX}{customer_text}\n{AI_PREFIX}{assistant_text}"
    if not prior_raw:
        return pair
    return f"{prior_raw}\n{pair}"


def dump_turns(turns: Iterable[Turn]) -> List[dict]:
    return [t.as_message() for t in turns]


def load_turns(records) -> List[Turn]:
    turns = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        role = record.get("role")
        content = record.get("content")
        if role in ROLES and isinstance(content, str):
            turns.append(Turn(role, content))
    return turns


def render(turns: Iterable[Turn]) -> str:
    """Flattened transcript of the customer/assistant turns."""
    lines = []
    for t in turns:
        if t.role == "user":
            lines.append(f"{CUSTOMER_PREFIX}{t.content}")
        elif t.role == "assistant":
            lines.append(f"{AI_PREFIX}{t.content}")
    return "\n".join(lines)
