# quiz-sessions/bank.py

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("quiz-sessions.bank")

_BASE = Path(__file__).resolve().parent
DATA_DIR = Path(os.getenv("QUIZ_DATA_DIR", str(_BASE / "data" / "quizzes")))

MULTIPLE_CHOICE = "multiple-choice"
TRUE_FALSE = "true-false"
DROPDOWN = "dropdown"

_DEFAULT_OPTION_COUNT = 4
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class OptionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    is_correct: bool = Field(default=False, alias="isCorrect")


class QuestionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(default=None, ge=1)
    type: Literal["multiple-choice", "true-false", "dropdown"] = MULTIPLE_CHOICE
    question: str
    options: List[Union[OptionModel, str, None]] = Field(default_factory=list)
    correct_answer: Union[bool, int, str, None] = Field(default=None, alias="correctAnswer")
    points: int = Field(default=1, ge=1)
    time_limit: int = Field(default=60, ge=1, alias="timeLimit")  # seconds
    order: Optional[int] = None


class QuizDefinition(BaseModel):
    """Authoring shape of a quiz, as stored in data files and sent to the admin API."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    course_id: int = Field(alias="courseId")
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    questions: List[QuestionModel] = Field(default_factory=list)
    passing_score: int = Field(default=70, ge=0, le=100, alias="passingScore")
    time_limit: int = Field(default=30, ge=1, alias="timeLimit")  # minutes
    attempts: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True, alias="isActive")
    randomize_questions: bool = Field(default=False, alias="randomizeQuestions")
    allow_retake: bool = Field(default=False, alias="allowRetake")
    retake_cooldown_hours: int = Field(default=24, ge=1, le=8760, alias="retakeCooldownHours")


# --- Stored question views ------------------------------------------------------


def parse_questions(raw: Iterable[Dict[str, Any]] | None) -> List[QuestionModel]:
    """Validate stored question JSON; records that no longer validate are skipped."""
    questions: List[QuestionModel] = []
    for idx, item in enumerate(raw or []):
        try:
            questions.append(QuestionModel.model_validate(item))
        except ValidationError as e:
            logger.warning("skipping invalid stored question at position %s: %s", idx, e)
    return questions


def canonical_questions(questions: Iterable[QuestionModel]) -> List[QuestionModel]:
    # sorted() is stable, so equal orders keep their stored sequence
    return sorted(questions, key=lambda q: q.order or 0)


def total_points(questions: Iterable[QuestionModel]) -> int:
    return sum(q.points for q in questions)


def question_key(question: QuestionModel, original_index: int) -> str:
    if question.id is not None:
        return str(question.id)
    return legacy_question_key(original_index)


def legacy_question_key(original_index: int) -> str:
    return f"q_{original_index}"


def option_text(option: Union[OptionModel, str, None]) -> Optional[str]:
    if isinstance(option, OptionModel):
        return option.text
    return option


def correct_index(question: QuestionModel) -> Optional[int]:
    """
    Resolve the stored correct answer to an option index.
    Accepts a numeric index, the literal text of the correct option, or (when
    neither is stored) the option flagged isCorrect. True/false questions also
    accept boolean-ish values, True being index 0.
    """
    expected = question.correct_answer

    if question.type == TRUE_FALSE:
        if isinstance(expected, bool):
            return 0 if expected else 1
        if isinstance(expected, str) and expected.strip().lower() in ("true", "false"):
            return 0 if expected.strip().lower() == "true" else 1

    if isinstance(expected, bool):
        return None
    if isinstance(expected, int):
        return expected
    if isinstance(expected, str):
        texts = [option_text(o) for o in question.options]
        return texts.index(expected) if expected in texts else None

    for idx, opt in enumerate(question.options):
        if isinstance(opt, OptionModel) and opt.is_correct:
            return idx
    return None


def parse_answer_index(answer: Any) -> Optional[int]:
    if answer is None or isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    m = _LEADING_INT_RE.match(str(answer))
    return int(m.group(1)) if m else None


# --- Display form ---------------------------------------------------------------


def _placeholder(idx: int) -> Dict[str, Any]:
    return {"text": f"Option {idx + 1}", "value": f"option_{idx}", "index": idx}


def display_options(question: QuestionModel) -> List[Dict[str, Any]]:
    if question.type == TRUE_FALSE:
        return [
            {"text": "True", "value": "true", "index": 0},
            {"text": "False", "value": "false", "index": 1},
        ]

    if not question.options:
        return [_placeholder(i) for i in range(_DEFAULT_OPTION_COUNT)]

    rendered = []
    for idx, opt in enumerate(question.options):
        text = option_text(opt)
        if text is not None and text.strip():
            rendered.append({"text": text, "value": text, "index": idx})
        else:
            rendered.append(_placeholder(idx))
    return rendered


def display_question(
    question: QuestionModel, original_index: int, display_index: int
) -> Dict[str, Any]:
    # never carries correctAnswer / isCorrect
    return {
        "id": question_key(question, original_index),
        "originalIndex": original_index,
        "displayIndex": display_index,
        "question": question.question,
        "type": question.type,
        "options": display_options(question),
        "timeLimit": question.time_limit,
        "points": question.points,
    }


# --- Quiz definition files ------------------------------------------------------


def _iter_jsonl(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        for idx, line in enumerate(f, 1):
            s = line.strip()
            if not s or s.startswith("#") or s.startswith("//"):
                continue
            try:
                yield json.loads(s)
            except json.JSONDecodeError:
                logger.warning("%s:%s is not valid JSON; skipped", p.name, idx)
                continue


def _iter_json(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError:
            logger.warning("%s is not valid JSON; skipped", p.name)
            data = []
    # a file holds either one quiz object or a list of them
    if isinstance(data, dict):
        yield data
    elif isinstance(data, list):
        for obj in data:
            yield obj


def load_quiz_files(data_dir: Path | None = None) -> List[QuizDefinition]:
    root = data_dir or DATA_DIR
    quizzes: List[QuizDefinition] = []
    if not root.exists():
        return quizzes

    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        suf = p.suffix.lower()
        if suf == ".jsonl":
            source = _iter_jsonl(p)
        elif suf == ".json":
            source = _iter_json(p)
        else:
            continue

        for raw in source:
            try:
                definition = QuizDefinition.model_validate(raw)
            except ValidationError as e:
                logger.warning("invalid quiz definition in %s: %s", p.name, e)
                continue
            # reload upserts by id
            if definition.id is None:
                logger.warning("quiz %r in %s has no id; skipped", definition.title, p.name)
                continue
            quizzes.append(definition)
    return quizzes
