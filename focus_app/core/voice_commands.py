"""Maps a voice transcript to a discrete teacher command.

Matching is substring-based on the lowercased transcript and checked in
priority order, so "topic finished" wins over the plain "stop" family.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VoiceCommand(str, Enum):
    TOPIC_FINISHED = "TOPIC_FINISHED"
    PUSH_QUESTION = "PUSH_QUESTION"
    NEXT_QUESTION = "NEXT_QUESTION"
    STOP_TIMER = "STOP_TIMER"
    SET_10S = "SET_10S"
    SET_20S = "SET_20S"
    SET_30S = "SET_30S"
    UNKNOWN = "UNKNOWN"


_PHRASES: list[tuple[VoiceCommand, tuple[str, ...]]] = [
    (
        VoiceCommand.TOPIC_FINISHED,
        (
            "topic finished",
            "topic is finished",
            "topic done",
            "topic is done",
            "that's the end",
            "end of topic",
            "end topic",
            "finished the topic",
            "done with this topic",
            "done with the topic",
            "moving on",
            "now for a question",
            "time for a question",
            "question time",
            "lets do a quiz",
            "let's do a quiz",
            "quiz time",
            "pop quiz",
            "test your knowledge",
        ),
    ),
    (VoiceCommand.PUSH_QUESTION, ("start question", "push question", "send question", "ask question")),
    (VoiceCommand.NEXT_QUESTION, ("next question", "next")),
    (VoiceCommand.STOP_TIMER, ("stop", "stop timer", "end question")),
    (VoiceCommand.SET_10S, ("ten seconds", "10 seconds")),
    (VoiceCommand.SET_20S, ("twenty seconds", "20 seconds")),
    (VoiceCommand.SET_30S, ("thirty seconds", "30 seconds")),
]

TIMER_PRESETS: dict[VoiceCommand, int] = {
    VoiceCommand.SET_10S: 10,
    VoiceCommand.SET_20S: 20,
    VoiceCommand.SET_30S: 30,
}


@dataclass(slots=True)
class VoiceMatch:
    command: VoiceCommand
    transcript: str


def classify_transcript(transcript: str) -> VoiceMatch:
    normalized = transcript.strip().lower().replace("’", "'")
    for command, phrases in _PHRASES:
        if any(phrase in normalized for phrase in phrases):
            return VoiceMatch(command=command, transcript=normalized)
    return VoiceMatch(command=VoiceCommand.UNKNOWN, transcript=normalized)
