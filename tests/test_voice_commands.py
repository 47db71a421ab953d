import pytest

from focus_app.core.voice_commands import VoiceCommand, classify_transcript


@pytest.mark.parametrize(
    ("transcript", "expected"),
    [
        ("Alright, that’s the end of this part", VoiceCommand.TOPIC_FINISHED),
        ("Let's do a quiz", VoiceCommand.TOPIC_FINISHED),
        ("please push question", VoiceCommand.PUSH_QUESTION),
        ("Next question", VoiceCommand.NEXT_QUESTION),
        ("stop the timer", VoiceCommand.STOP_TIMER),
        ("give them 10 seconds", VoiceCommand.SET_10S),
        ("thirty seconds", VoiceCommand.SET_30S),
        ("", VoiceCommand.UNKNOWN),
    ],
)
def test_classify_transcript(transcript, expected):
    assert classify_transcript(transcript).command is expected


def test_topic_phrases_win_over_stop():
    assert classify_transcript("end topic and stop").command is VoiceCommand.TOPIC_FINISHED


def test_transcript_is_normalized():
    match = classify_transcript("  QUIZ Time  ")
    assert match.transcript == "quiz time"
