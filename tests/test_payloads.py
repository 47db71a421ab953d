import pytest
from pydantic import ValidationError

from focus_app.core.markdown_renderer import QuestionRenderer
from focus_app.core.models import QuestionMode, Role
from focus_app.server.payloads import FocusUpdatePayload, JoinPayload, PushQuestionPayload, SubmitAnswerPayload


def test_push_question_accepts_wire_names():
    payload = PushQuestionPayload.model_validate(
        {"questionText": "Why?", "mode": "FREE_TEXT", "correctAnswer": "Because", "timerDuration": 20}
    )
    spec = payload.to_spec()
    assert spec.mode is QuestionMode.FREE_TEXT
    assert spec.timer_duration_seconds == 20
    assert PushQuestionPayload.model_validate({"questionText": "Q", "mode": "MANUAL", "timerDuration": 5}).mode is QuestionMode.FREE_TEXT


def test_push_question_requires_positive_timer():
    with pytest.raises(ValidationError):
        PushQuestionPayload.model_validate({"questionText": "Q", "timerDuration": 0})


def test_focus_update_score_bounds():
    payload = FocusUpdatePayload.model_validate({"score": 64, "isLookingAway": True})
    assert payload.is_looking_away
    assert payload.is_tab_active
    with pytest.raises(ValidationError):
        FocusUpdatePayload.model_validate({"score": 140})


def test_join_role_is_case_insensitive():
    assert JoinPayload.model_validate({"role": " teacher "}).role is Role.TEACHER
    with pytest.raises(ValidationError):
        JoinPayload.model_validate({"name": "x", "role": "ADMIN"})


def test_push_question_timer_is_bounded():
    with pytest.raises(ValidationError):
        PushQuestionPayload.model_validate({"questionText": "Q", "timerDuration": 10**12})
    assert PushQuestionPayload.model_validate({"questionText": "Q", "timerDuration": 3600}).timer_duration == 3600


def test_submit_answer_requires_question_id():
    payload = SubmitAnswerPayload.model_validate({"questionId": "q1", "answer": "42"})
    assert payload.question_id == "q1"
    assert payload.submit_time is None
    with pytest.raises(ValidationError):
        SubmitAnswerPayload.model_validate({"answer": "42"})


@pytest.mark.parametrize("submit_time", [1e300, -1, float("inf")])
def test_submit_time_must_be_a_real_timestamp(submit_time):
    with pytest.raises(ValidationError):
        SubmitAnswerPayload.model_validate({"questionId": "q1", "answer": "42", "submitTime": submit_time})


def test_renderer_escapes_html_by_default():
    html = QuestionRenderer().render_fragment("Pick <script>alert(1)</script> ~~wrong~~")
    assert "<script>" not in html
    assert "<s>wrong</s>" in html
    assert "No content" in QuestionRenderer().render_fragment("   ")
