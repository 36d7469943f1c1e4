"""Enumerations for Whitefire game entities."""

from __future__ import annotations

from enum import Enum


class Faction(str, Enum):
    """Team allegiance in Whitefire."""

    HARVEST = "harvest"
    LAMB = "lamb"


class RoleType(str, Enum):
    """Supported Whitefire role identities."""

    MARKED = "marked"
    HERETIC = "heretic"
    LISTENER = "listener"
    CORONER = "coroner"
    TWIN = "twin"
    GUARD = "guard"
    INNOCENT = "innocent"
    DORMANT = "dormant"


class PlayerType(str, Enum):
    """Who drives a seat: an LLM agent or a human being observed."""

    AGENT = "agent"
    HUMAN = "human"


class GamePhase(str, Enum):
    """High-level phase of the game loop."""

    PROLOGUE = "prologue"
    SECRET_MEETING = "secret_meeting"
    DAY = "day"
    VOTING = "voting"
    EVENT = "event"
    NIGHT = "night"
    END = "end"


class NightPhase(str, Enum):
    """Sub-phases of the night, one per acting role."""

    LISTENER = "listener"
    MARKED_DISCUSS = "marked-discuss"
    MARKED_VOTE = "marked-vote"
    GUARD = "guard"
    CORONER = "coroner"


class Channel(str, Enum):
    """Faction or ability channels a message can be restricted to."""

    MARKED = "marked"
    LISTENER = "listener"
    CORONER = "coroner"
    GUARD = "guard"
    TWINS = "twins"


class MessageType(str, Enum):
    """Kinds of entries in the message log."""

    SYSTEM = "system"
    SPEECH = "speech"
    ACTION = "action"
    VOTE = "vote"
    DEATH = "death"
    PROMPT = "prompt"
    THINKING = "thinking"
    SECRET = "secret"


class MeetingTiming(str, Enum):
    """When a secret meeting is scheduled within a round."""

    BEFORE_DISCUSSION = "before_discussion"
    AFTER_SACRIFICE = "after_sacrifice"


class MeetingPolicy(str, Enum):
    """How pending secret meetings are resolved."""

    ASK = "ask"
    RANDOM = "random"
    SKIP = "skip"


class EmotionalState(str, Enum):
    """Transient emotional tag applied by death reactions."""

    VIRTUE = "virtue"
    SIN = "sin"
