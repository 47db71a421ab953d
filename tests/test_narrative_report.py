import json

import pytest

from focus_app.core.services.narrative_report import (
    FALLBACK_ANALYSIS,
    NarrativeReportError,
    NarrativeReportService,
    build_prompt,
    parse_analysis,
)

CONTEXT = {"meta": {"totalQuestions": 2}, "topicPerformance": []}
ANALYSIS = {
    "summary": "Engaged class.",
    "gaps": [{"topic": "Fractions", "accuracy": "40%", "insight": "Denominators mixed up."}],
    "revision_notes": ["a", "b", "c"],
    "recommendations": ["x", "y"],
}


class FakeResponse:
    def __init__(self, text: str) -> None:
        self.text = text


class FakeModel:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    def generate_content(self, prompt: str) -> FakeResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def test_generate_parses_fenced_json():
    model = FakeModel(text=f"```json\n{json.dumps(ANALYSIS)}\n```")
    service = NarrativeReportService(model)
    assert service.generate(CONTEXT) == ANALYSIS
    assert '"totalQuestions": 2' in model.prompts[0]


@pytest.mark.parametrize(
    "model",
    [
        FakeModel(text="Sorry, I cannot help with that."),
        FakeModel(text=json.dumps({"summary": "partial"})),
        FakeModel(error=TimeoutError("deadline exceeded")),
    ],
)
def test_failures_degrade_to_fallback(model):
    assert NarrativeReportService(model).generate(CONTEXT) == FALLBACK_ANALYSIS


def test_unconfigured_service_uses_fallback():
    service = NarrativeReportService.from_api_key(None)
    result = service.generate(CONTEXT)
    assert result == FALLBACK_ANALYSIS
    result["gaps"].append("mutated")
    assert FALLBACK_ANALYSIS["gaps"] == []


def test_parse_analysis_rejects_non_objects():
    with pytest.raises(NarrativeReportError):
        parse_analysis("[1, 2, 3]")


def test_prompt_embeds_context():
    prompt = build_prompt(CONTEXT)
    assert "FocusAI" in prompt
    assert json.dumps(CONTEXT, indent=2) in prompt
