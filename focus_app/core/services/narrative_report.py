"""Narrative session analysis backed by a Gemini model.

The service is a black box to the rest of the application: a structured
context goes in, a JSON report comes out. Any failure degrades to
:data:`FALLBACK_ANALYSIS` instead of an error.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Protocol

import google.generativeai as genai

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-1.5-flash"

FALLBACK_ANALYSIS: dict[str, Any] = {
    "summary": "AI Analysis failed or timed out.",
    "gaps": [],
    "revision_notes": ["Check server logs."],
    "recommendations": ["Review raw data manually."],
}

_REQUIRED_KEYS = ("summary", "gaps", "revision_notes", "recommendations")

_PROMPT_TEMPLATE = """
You are FocusAI, an educational analytics engine.
Analyze the following classroom session data and provide a structured JSON report.

DATA CONTEXT:
{context}

REQUIREMENTS:
1. Lecture summary: 2-3 sentences on session performance and engagement.
2. Knowledge gaps: topics (questions) with accuracy below 50% and likely misconceptions.
3. Revision notes: 3 bullet points of key facts based on the questions asked.
4. Recommendations: 2 actionable steps for the teacher based on the data.

OUTPUT FORMAT (JSON ONLY):
{{
    "summary": "string",
    "gaps": [ {{ "topic": "string", "accuracy": "string", "insight": "string" }} ],
    "revision_notes": [ "string" ],
    "recommendations": [ "string" ]
}}
Return raw JSON without markdown code fences.
"""


class NarrativeReportError(Exception):
    """Raised when the model output is not a usable report."""


class TextGenerator(Protocol):
    def generate_content(self, prompt: str) -> Any: ...


def build_prompt(context: dict[str, object]) -> str:
    return _PROMPT_TEMPLATE.format(context=json.dumps(context, indent=2))


def parse_analysis(text: str) -> dict[str, Any]:
    cleaned = text.replace("```json", "").replace("```", "").strip()
    try:
        analysis = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise NarrativeReportError("Model returned invalid JSON.") from exc
    if not isinstance(analysis, dict) or any(key not in analysis for key in _REQUIRED_KEYS):
        raise NarrativeReportError("Model response is missing report fields.")
    return analysis


def fallback_analysis() -> dict[str, Any]:
    return copy.deepcopy(FALLBACK_ANALYSIS)


class NarrativeReportService:
    """Generates the narrative report; works without a model in fallback mode."""

    def __init__(self, model: TextGenerator | None = None) -> None:
        self._model = model

    @classmethod
    def from_api_key(cls, api_key: str | None, model_name: str = DEFAULT_MODEL_NAME) -> "NarrativeReportService":
        if not api_key:
            logger.warning("GEMINI_API_KEY not set; narrative reports use the fallback")
            return cls(model=None)
        genai.configure(api_key=api_key)
        return cls(model=genai.GenerativeModel(model_name))

    def generate(self, context: dict[str, object]) -> dict[str, Any]:
        if self._model is None:
            return fallback_analysis()
        try:
            response = self._model.generate_content(build_prompt(context))
            return parse_analysis(response.text)
        except Exception:
            logger.exception("Narrative report generation failed; returning fallback")
            return fallback_analysis()
