"""Reply parsing and roster name resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .config import DEFAULT_SPEECH_MARKER, DEFAULT_THINKING_MARKER
from .exceptions import MalformedResponseError

_NAME_SEPARATORS = re.compile(r"[\s·\-]+")
MIN_PART_LENGTH = 3


@dataclass(frozen=True, slots=True)
class ParsedReply:
    """A reply split into private reasoning and the public statement."""

    thinking: str
    speech: str


def parse_reply(
    text: str,
    thinking_marker: str = DEFAULT_THINKING_MARKER,
    speech_marker: str = DEFAULT_SPEECH_MARKER,
) -> ParsedReply:
    """Split ``text`` on the two section markers.

    Without the public marker the whole reply (minus a leading private marker)
    is the statement. An empty statement is a malformed reply.
    """

    if text is None or not text.strip():
        raise MalformedResponseError("Provider returned an empty reply")

    thinking = ""
    speech_start = text.find(speech_marker)
    thinking_start = text.find(thinking_marker)

    if thinking_start != -1 and (speech_start == -1 or thinking_start < speech_start):
        end = speech_start if speech_start != -1 else len(text)
        thinking = text[thinking_start + len(thinking_marker):end].strip()

    if speech_start != -1:
        speech = text[speech_start + len(speech_marker):].strip()
    elif thinking_start != -1:
        # Only a private section: treat what follows the marker as the statement.
        speech = text[thinking_start + len(thinking_marker):].strip()
        thinking = ""
    else:
        speech = text.strip()

    if not speech:
        raise MalformedResponseError("Reply has no public statement")
    return ParsedReply(thinking=thinking, speech=speech)


class MatchReason(str, Enum):
    """How a free-text reply was mapped (or not) to a roster name."""

    EXACT = "exact"
    CONTAINED = "contained"
    PARTIAL = "partial"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class NameMatch:
    name: Optional[str]
    reason: MatchReason
    candidates: Tuple[str, ...] = ()

    @property
    def matched(self) -> bool:
        return self.name is not None


def resolve_name(text: str, roster: Sequence[str]) -> NameMatch:
    """Map a free-text reply to exactly one roster name, or explain why not.

    1. The whole reply equals a name (case-insensitive).
    2. Full names mentioned in the reply as whole words; names that are substrings of another
       contained name are dropped. Exactly one must remain.
    3. Name parts of at least three characters contained in the reply, where
       the part belongs to a single roster member. Exactly one member must
       match.

    Anything that leaves more than one candidate is rejected as ambiguous
    rather than guessed.
    """

    cleaned = text.strip().strip(".!?\"'").strip()
    folded = cleaned.casefold()
    if not folded:
        return NameMatch(None, MatchReason.NOT_FOUND)

    for name in roster:
        if name.casefold() == folded:
            return NameMatch(name, MatchReason.EXACT)

    contained = [name for name in roster if _mentions(folded, name.casefold())]
    if contained:
        maximal = [
            name
            for name in contained
            if not any(
                other != name and name.casefold() in other.casefold() for other in contained
            )
        ]
        if len(maximal) == 1:
            return NameMatch(maximal[0], MatchReason.CONTAINED)
        return NameMatch(None, MatchReason.AMBIGUOUS, tuple(maximal))

    owners: dict[str, list[str]] = {}
    for name in roster:
        for part in _NAME_SEPARATORS.split(name):
            if len(part) >= MIN_PART_LENGTH:
                owners.setdefault(part.casefold(), []).append(name)

    hits: list[str] = []
    for part, names in owners.items():
        if len(names) == 1 and _mentions(folded, part) and names[0] not in hits:
            hits.append(names[0])
    if len(hits) == 1:
        return NameMatch(hits[0], MatchReason.PARTIAL)
    if hits:
        return NameMatch(None, MatchReason.AMBIGUOUS, tuple(hits))
    return NameMatch(None, MatchReason.NOT_FOUND)


def _mentions(text: str, part: str) -> bool:
    # Word boundaries only make sense for scripts that separate words with spaces.
    if part.isascii():
        return re.search(rf"(?<!\w){re.escape(part)}(?!\w)", text) is not None
    return part in text


__all__ = ["MatchReason", "NameMatch", "ParsedReply", "parse_reply", "resolve_name"]
