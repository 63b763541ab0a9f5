# trivia/generator.py
"""
Question generation behind a narrow text-completion interface.

The provider is untrusted: its output is parsed into ``RawQuestion`` and
validated strictly. A malformed response gets exactly one repair round trip
(the provider is asked to fix its own JSON); if that also fails the caller
receives a ``GenerationError``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import openai
from flask import current_app

from trivia.answer_keys import KeyEntry
from trivia.errors import GenerationError

MULTIPLE_CHOICE = "multiple_choice"
TRUE_FALSE = "true_false"
SHORT_ANSWER = "short_answer"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, SHORT_ANSWER)
CHOICE_IDS = ["A", "B", "C", "D"]

T = TypeVar("T")


class QuestionFormatError(ValueError):
    """Provider output did not match the question schema."""


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class OpenAICompletion:
    """``complete(system_prompt, user_prompt, temperature) -> str`` over chat completions."""

    def __init__(self, api_key: Optional[str], model: str, timeout: int = 30):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[openai.OpenAI] = None

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def complete(self, system_prompt: str, user_prompt: str, temperature: float = 0.7) -> str:
        try:
            result = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                timeout=self.timeout,
            )
            return (result.choices[0].message.content or "").strip()
        except Exception as exc:
            raise GenerationError(f"OpenAI request failed: {exc}") from exc


def completion_client():
    return current_app.completion_client


def grader_client():
    return getattr(current_app, "grader_client", None) or current_app.completion_client


# ---------------------------------------------------------------------------
# Question shapes
# ---------------------------------------------------------------------------

@dataclass
class QuestionSpec:
    category: str
    difficulty: str
    question_type: Optional[str] = None  # None lets the provider pick MC or true/false
    context: str = ""


@dataclass
class RawQuestion:
    type: str
    prompt: str
    answer: str
    explanation: str = ""
    choices: Optional[List[Dict[str, str]]] = None
    category: str = ""
    difficulty: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def public_payload(self, question_id: str, **extra: Any) -> Dict[str, Any]:
        """What the browser may see before answering: no answer, no explanation."""
        payload: Dict[str, Any] = {
            "id": question_id,
            "type": self.type,
            "prompt": self.prompt,
            "category": self.category,
            "difficulty": self.difficulty,
        }
        if self.choices:
            payload["choices"] = [dict(c) for c in self.choices]
        payload.update(extra)
        return payload

    def key_entry(self, question_id: str, **extra: Any) -> KeyEntry:
        return KeyEntry(
            question_id=question_id,
            answer=self.answer,
            question_type=self.type,
            explanation=self.explanation,
            prompt=self.prompt,
            public=self.public_payload(question_id, **extra),
        )


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

QUESTION_SCHEMA = """{
  "type": "multiple_choice" | "true_false" | "short_answer",
  "prompt": "string",
  "choices": [{"id":"A","text":"..."},{"id":"B","text":"..."},{"id":"C","text":"..."},{"id":"D","text":"..."}],
  "answer": "A/B/C/D for multiple_choice, true/false for true_false, text for short_answer",
  "explanation": "string"
}"""

BATCH_SCHEMA = """{
  "title": "string",
  "questions": [
    {
      "type": "multiple_choice" | "true_false" | "short_answer",
      "prompt": "string",
      "choices": [{"id":"A","text":"..."},{"id":"B","text":"..."},{"id":"C","text":"..."},{"id":"D","text":"..."}],
      "answer": "A/B/C/D for multiple_choice, true/false for true_false, text for short_answer",
      "explanation": "string"
    }
  ]
}"""

_RULES = """Rules:
- Multiple choice MUST have exactly 4 options with IDs: A, B, C, D (in that order), exactly one correct
- True/false statements must be clearly and unambiguously true or false; omit "choices"
- Short answer questions must have one short, unambiguous answer (a name, word or number); omit "choices"
- NEVER include the answer within the question prompt itself
- Make wrong answers plausible but clearly distinct from the correct answer
- Include a concise explanation (1-2 sentences)
- All questions must be factually accurate"""

SINGLE_SYSTEM_PROMPT = (
    "You are a trivia question generator. Generate exactly ONE high-quality trivia question.\n\n"
    f"{_RULES}\n\nReturn ONLY valid JSON matching this exact schema:\n{QUESTION_SCHEMA}"
)

BATCH_SYSTEM_PROMPT = (
    "You are a professional trivia generator. Generate the requested number of questions.\n\n"
    f"{_RULES}\n- Do NOT include text outside of JSON\n\n"
    f"Return strict JSON matching this exact schema:\n{BATCH_SCHEMA}"
)

REPAIR_SYSTEM_PROMPT = "You fix invalid JSON to match a schema. Return ONLY the corrected JSON."

GRADER_SYSTEM_PROMPT = (
    "You are grading a short answer for trivia. Decide if the user response is an acceptable "
    "alias or equivalent of the canonical answer.\n"
    'Return JSON: {"score": 0..1, "explanation": "1 sentence"}. Accept if score >= 0.85.\n'
    "Be generous with synonyms, common abbreviations, and minor spelling variations."
)


def _type_instruction(question_type: Optional[str]) -> str:
    if question_type is None:
        return "Question type: multiple_choice OR true_false (choose one)."
    return f"Question type: {question_type}."


# ---------------------------------------------------------------------------
# Parsing / validation
# ---------------------------------------------------------------------------

def _extract_json_block(text: str) -> Optional[str]:
    if not text or not text.strip():
        return None
    t = text.strip()
    if t.startswith("```"):
        t = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", t)
        t = re.sub(r"\s*```$", "", t)
    i, j = t.find("{"), t.rfind("}")
    return t[i:j + 1] if i != -1 and j != -1 and j > i else None


def _load_object(text: str) -> Dict[str, Any]:
    block = _extract_json_block(text)
    if not block:
        raise QuestionFormatError("no JSON object found")
    try:
        obj = json.loads(block)
    except json.JSONDecodeError as exc:
        raise QuestionFormatError(f"invalid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise QuestionFormatError("top-level value is not an object")
    return obj


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _validate_question(obj: Any, allowed_types: Sequence[str], category: str, difficulty: str) -> RawQuestion:
    if not isinstance(obj, dict):
        raise QuestionFormatError("question is not an object")

    qtype = _clean_str(obj.get("type")).lower()
    if qtype not in allowed_types:
        raise QuestionFormatError(f"unexpected question type {qtype!r}")

    prompt = _clean_str(obj.get("prompt"))
    if not prompt:
        raise QuestionFormatError("missing prompt")

    raw_answer = obj.get("answer")
    if isinstance(raw_answer, bool):
        raw_answer = "true" if raw_answer else "false"
    answer = _clean_str(raw_answer)
    if not answer:
        raise QuestionFormatError("missing answer")

    choices = None
    if qtype == MULTIPLE_CHOICE:
        raw_choices = obj.get("choices")
        if not isinstance(raw_choices, list) or len(raw_choices) != len(CHOICE_IDS):
            count = len(raw_choices) if isinstance(raw_choices, list) else 0
            raise QuestionFormatError(f"multiple choice needs exactly 4 choices, got {count}")
        choices = []
        for c in raw_choices:
            if not isinstance(c, dict):
                raise QuestionFormatError("choice is not an object")
            cid = _clean_str(c.get("id")).upper()
            text = _clean_str(c.get("text"))
            if not cid or not text:
                raise QuestionFormatError("choice missing id or text")
            choices.append({"id": cid, "text": text})
        choices.sort(key=lambda c: c["id"])
        if [c["id"] for c in choices] != CHOICE_IDS:
            raise QuestionFormatError("choices must be labeled A, B, C, D")
        answer = answer.upper()
        if answer not in CHOICE_IDS:
            raise QuestionFormatError(f"answer {answer!r} is not a choice id")
    elif qtype == TRUE_FALSE:
        answer = answer.lower()
        if answer not in {"true", "false"}:
            raise QuestionFormatError(f"true/false answer {answer!r}")

    return RawQuestion(
        type=qtype,
        prompt=prompt,
        answer=answer,
        explanation=_clean_str(obj.get("explanation")),
        choices=choices,
        category=category,
        difficulty=difficulty,
    )


def _with_repair(system_prompt: str, user_prompt: str, temperature: float,
                 schema: str, parse: Callable[[str], T]) -> T:
    client = completion_client()
    text = client.complete(system_prompt, user_prompt, temperature)
    try:
        return parse(text)
    except QuestionFormatError as exc:
        current_app.logger.warning(f"[gen] unusable provider output ({exc}); attempting repair. head={text[:200]!r}")
        first_error = exc

    repaired = client.complete(
        REPAIR_SYSTEM_PROMPT,
        f"Fix this JSON to match the schema:\n\nInvalid JSON:\n{text}\n\n"
        f"Problem: {first_error}\n\nRequired Schema:\n{schema}",
        0.0,
    )
    try:
        return parse(repaired)
    except QuestionFormatError as exc:
        current_app.logger.warning(f"[gen] repair failed: {exc}")
        raise GenerationError("We couldn't generate a valid question. Please try again.") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate(spec: QuestionSpec) -> RawQuestion:
    """Generate one question. Difficulty is whatever the caller says it is."""
    allowed = (spec.question_type,) if spec.question_type else (MULTIPLE_CHOICE, TRUE_FALSE)
    user_prompt = (
        f"Generate one trivia question about: {spec.category}\n"
        f"Difficulty: {spec.difficulty}\n"
        f"{_type_instruction(spec.question_type)}"
    )
    if spec.context:
        user_prompt += f"\n\n{spec.context}"

    def _parse(text: str) -> RawQuestion:
        return _validate_question(_load_object(text), allowed, spec.category, spec.difficulty)

    return _with_repair(SINGLE_SYSTEM_PROMPT, user_prompt, 1.0, QUESTION_SCHEMA, _parse)


def generate_batch(category: str, difficulty: str, count: int,
                   question_types: Sequence[str] = (MULTIPLE_CHOICE,),
                   context: str = "") -> Tuple[str, List[RawQuestion]]:
    """Generate ``count`` questions. Returns (title, questions); fewer than ``count`` is a failure."""
    allowed = tuple(question_types)
    user_prompt = (
        f"Create {count} questions about: {category}\n"
        f"Difficulty: {difficulty}\n"
        f"Allowed question types: {', '.join(allowed)}\n"
        "Generate a creative title for this quiz."
    )
    if context:
        user_prompt += f"\n\n{context}"

    def _parse(text: str) -> Tuple[str, List[RawQuestion]]:
        obj = _load_object(text)
        items = obj.get("questions")
        if not isinstance(items, list):
            raise QuestionFormatError("missing questions array")
        if len(items) < count:
            raise QuestionFormatError(f"expected {count} questions, got {len(items)}")
        questions = [_validate_question(q, allowed, category, difficulty) for q in items[:count]]
        title = _clean_str(obj.get("title")) or f"{category} Quiz"
        return title, questions

    return _with_repair(BATCH_SYSTEM_PROMPT, user_prompt, 0.8, BATCH_SCHEMA, _parse)


def judge_short_answer(prompt: str, canonical: str, response: str) -> Tuple[float, str]:
    """Fuzzy grading. Provider failure raises; unreadable grading output scores 0."""
    text = grader_client().complete(
        GRADER_SYSTEM_PROMPT,
        f"Question: {prompt}\nCanonical answer: {canonical}\nUser response: {response}",
        0.3,
    )
    try:
        obj = _load_object(text)
        score = float(obj.get("score"))
    except (QuestionFormatError, TypeError, ValueError):
        current_app.logger.warning(f"[eval] unreadable grading output: {text[:200]!r}")
        return 0.0, ""
    return max(0.0, min(1.0, score)), _clean_str(obj.get("explanation"))
