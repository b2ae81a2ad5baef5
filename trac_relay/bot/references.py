"""Detection of ticket references such as ``BUG#33`` or ``#33`` in messages."""

from __future__ import annotations

import re
from dataclasses import dataclass

TICKET_RE = re.compile(r"([a-zA-Z0-9]+)?#(\d+)")


@dataclass(frozen=True)
class ReferenceMatch:
    """A ticket reference found in a message.

    The number is kept as text so leading zeros reach Trac untouched.
    """

    instance: str  # Trac ID as typed, empty for bare numbers
    number: str

    @property
    def label(self) -> str:
        return f"{self.instance}#{self.number}"


def extract_references(text: str) -> list[ReferenceMatch]:
    """Find all ticket references in a message, in order of appearance.

    Duplicates are kept; a message without references yields an empty list.
    """
    return [
        ReferenceMatch(instance=match.group(1) or "", number=match.group(2))
        for match in TICKET_RE.finditer(text)
    ]
