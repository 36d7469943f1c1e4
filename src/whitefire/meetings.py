"""Secret meetings between two living players."""

from __future__ import annotations

from typing import Tuple

from .enums import GamePhase, MeetingTiming, MessageType
from .exceptions import InvalidActionError
from .messages import VisibilityScope, Visibility, narrate
from .players import Player
from .state import GameState, PendingMeeting, SecretMeetingRecord


def start_meeting(state: GameState, timing: MeetingTiming) -> PendingMeeting:
    """Enter the secret-meeting phase with no participants chosen yet."""

    meeting = PendingMeeting(timing=timing, round_number=state.round_number)
    state.set_phase(GamePhase.SECRET_MEETING)
    state.pending_meeting = meeting
    return meeting


def _require_pending(state: GameState) -> PendingMeeting:
    if state.phase is not GamePhase.SECRET_MEETING or state.pending_meeting is None:
        raise InvalidActionError("No secret meeting is pending")
    return state.pending_meeting


def select_participants(state: GameState, first: str, second: str) -> PendingMeeting:
    """Choose the two players who meet; both must be alive and distinct."""

    meeting = _require_pending(state)
    if not meeting.awaiting_selection:
        raise InvalidActionError("Participants have already been selected for this meeting")
    if first == second:
        raise InvalidActionError("A secret meeting needs two different players")
    for name in (first, second):
        if not state.player(name).alive:
            raise InvalidActionError(f"{name} is dead and cannot attend a secret meeting")

    selected = PendingMeeting(
        timing=meeting.timing,
        round_number=meeting.round_number,
        participants=(first, second),
    )
    state.pending_meeting = selected
    state.reset_cursor()
    narrate(
        state,
        f"{first} and {second} slip away from the others to speak in private.",
        Visibility.for_pair(first, second),
    )
    return selected


def random_participants(state: GameState) -> Tuple[str, str]:
    living = list(state.living_names)
    if len(living) < 2:
        raise InvalidActionError("Fewer than two players are alive")
    first, second = state.rng.sample(living, 2)
    return first, second


def meeting_actors(state: GameState) -> Tuple[Player, ...]:
    meeting = state.pending_meeting
    if meeting is None or meeting.awaiting_selection:
        return ()
    return tuple(
        state.player(name) for name in meeting.participants if state.player(name).alive
    )


def complete_meeting(state: GameState) -> SecretMeetingRecord:
    """Archive the finished meeting with the ids of the messages the pair exchanged."""

    meeting = _require_pending(state)
    if meeting.awaiting_selection:
        raise InvalidActionError("The meeting has no participants yet")
    pair = set(meeting.participants)
    archived = {
        message_id for record in state.meeting_history for message_id in record.message_ids
    }
    message_ids = tuple(
        message.id
        for message in state.messages
        if message.type is MessageType.SECRET
        and message.id not in archived
        and message.round_number == meeting.round_number
        and message.visibility.scope is VisibilityScope.PAIR
        and set(message.visibility.players) == pair
    )
    record = SecretMeetingRecord(
        round_number=meeting.round_number,
        timing=meeting.timing,
        participants=meeting.participants,
        message_ids=message_ids,
    )
    state.meeting_history.append(record)
    state.pending_meeting = None
    return record


def skip_meeting(state: GameState) -> SecretMeetingRecord:
    meeting = _require_pending(state)
    record = SecretMeetingRecord(
        round_number=meeting.round_number,
        timing=meeting.timing,
        participants=(),
        skipped=True,
    )
    state.meeting_history.append(record)
    state.pending_meeting = None
    return record


__all__ = [
    "complete_meeting",
    "meeting_actors",
    "random_participants",
    "select_participants",
    "skip_meeting",
    "start_meeting",
]
