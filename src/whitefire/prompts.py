"""Prompt construction for agent turns."""

from __future__ import annotations

from typing import Protocol

from .context import TurnContext
from .enums import Faction, GamePhase, MessageType, NightPhase, RoleType
from .messages import Message


class PromptBuilder(Protocol):
    """Turns a private context into the text sent to the provider."""

    def build(self, context: TurnContext, thinking_marker: str, speech_marker: str) -> str:
        ...


class DefaultPromptBuilder:
    """Plain-text prompt: rules, identity, knowledge, history, then the task."""

    max_history: int = 80

    def __init__(self, max_history: int | None = None) -> None:
        if max_history is not None:
            self.max_history = max_history

    def build(self, context: TurnContext, thinking_marker: str, speech_marker: str) -> str:
        sections = [
            self._build_rules(),
            self._build_identity(context),
            self._build_knowledge(context),
            self._build_history(context),
            self._build_instruction(context),
            self._build_format(thinking_marker, speech_marker),
        ]
        return "\n\n".join(section for section in sections if section)

    def _build_rules(self) -> str:
        return """You are playing Whitefire, a social deduction game set in a snowbound mountain lodge.

RULES:
- The harvest faction (the marked, and later a hidden heretic) kills one lamb each night.
- The lamb faction wins when every marked player is dead.
- The harvest wins when its living members are at least as many as the living lambs.
- Each day everyone speaks once, then votes. The player with the most votes is sacrificed.
- A tied vote leads to one revote between the tied players; a second tie spares everyone.
- The listener learns at night whether one player is clean.
- The coroner learns whether the last sacrificed player was clean.
- The guard protects one player per night, never the same player two nights in a row."""

    def _build_identity(self, context: TurnContext) -> str:
        side = "the lambs" if context.faction is Faction.LAMB else "the harvest"
        lines = [
            f"You are {context.name}. Your role is the {context.role.value} and you play for {side}.",
        ]
        if context.personality:
            lines.append(f"Personality: {context.personality}")
        if context.emotional_state is not None:
            lines.append(f"Current emotional state: {context.emotional_state.value}.")
        lines.append(f"Round {context.round_number}. Living: {', '.join(context.living_players)}.")
        if context.dead_players:
            lines.append(f"Dead: {', '.join(context.dead_players)}.")
        return "\n".join(lines)

    def _build_knowledge(self, context: TurnContext) -> str:
        lines: list[str] = []
        if context.role is RoleType.MARKED:
            allies = ", ".join(context.fellow_marked) or "nobody; you are alone"
            lines.append(f"Your fellow marked: {allies}.")
        if context.twin_partner:
            lines.append(f"Your twin is {context.twin_partner}.")
        for check in context.listener_checks:
            verdict = "clean" if check.is_clean else "HARVEST"
            lines.append(f"Round {check.round_number}: you listened to {check.target}: {verdict}.")
        for report in context.coroner_reports:
            verdict = "clean" if report.is_clean else "HARVEST"
            lines.append(f"Round {report.round_number}: the body of {report.target} was {verdict}.")
        for record in context.guard_records:
            lines.append(f"Round {record.round_number}: you protected {record.target}.")
        if not lines:
            return ""
        return "WHAT YOU KNOW:\n" + "\n".join(f"- {line}" for line in lines)

    def _build_history(self, context: TurnContext) -> str:
        history = context.history[-self.max_history:]
        if not history:
            return ""
        return "WHAT HAS HAPPENED:\n" + "\n".join(_format_message(message) for message in history)

    def _build_instruction(self, context: TurnContext) -> str:
        targets = ", ".join(context.valid_targets)
        phase = context.phase
        if phase is GamePhase.DAY:
            if context.is_revote:
                return (
                    f"The vote tied between {', '.join(context.tied_players)}. "
                    "Speak once more to sway the final vote."
                )
            return "It is your turn to speak to everyone. Share suspicions, defend yourself, persuade."
        if phase is GamePhase.VOTING:
            return f"Vote for one player to sacrifice. Name exactly one of: {targets}."
        if phase is GamePhase.SECRET_MEETING:
            return (
                f"You are meeting {context.meeting_partner} alone. Nobody else will hear this. "
                "Say what you want them to know."
            )
        night = context.night_phase
        if night is NightPhase.LISTENER:
            return f"Choose one player to listen to tonight. Name exactly one of: {targets}."
        if night is NightPhase.MARKED_DISCUSS:
            return (
                "Speak privately with the other marked about whom to harvest tonight. "
                f"Candidates: {targets}."
            )
        if night is NightPhase.MARKED_VOTE:
            return f"Vote for tonight's harvest. Name exactly one of: {targets}."
        if night is NightPhase.GUARD:
            return f"Choose one player to protect tonight. Name exactly one of: {targets}."
        return "Respond briefly."

    def _build_format(self, thinking_marker: str, speech_marker: str) -> str:
        return (
            "Reply in exactly this format:\n"
            f"{thinking_marker}\n<your private reasoning, never shown to others>\n"
            f"{speech_marker}\n<what you say or the name you choose>"
        )


def _format_message(message: Message) -> str:
    if message.type in (MessageType.SYSTEM, MessageType.DEATH):
        return f"[{message.sender}] {message.content}"
    if message.type is MessageType.THINKING:
        return f"(your earlier thought) {message.content}"
    return f"{message.sender}: {message.content}"


__all__ = ["DefaultPromptBuilder", "PromptBuilder"]
