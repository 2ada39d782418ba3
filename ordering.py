from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, List, MutableSequence, Optional, Tuple

from bank import QuestionModel, canonical_questions

logger = logging.getLogger("quiz-sessions.ordering")

Shuffle = Callable[[MutableSequence[Any]], None]


def identity_order(questions: List[QuestionModel]) -> List[Dict[str, Any]]:
    return [
        {"originalIndex": idx, "newIndex": idx, "questionId": q.id}
        for idx, q in enumerate(canonical_questions(questions))
    ]


def build_question_order(
    questions: List[QuestionModel],
    randomize: bool,
    shuffle: Shuffle = random.shuffle,
) -> List[Dict[str, Any]]:
    """
    Build the order mapping for a new session, in display order.
    Computed once at session creation and stored; never recomputed for that session.
    """
    base = canonical_questions(questions)
    positions = list(range(len(base)))
    if randomize:
        shuffle(positions)

    return [
        {"originalIndex": original, "newIndex": new, "questionId": base[original].id}
        for new, original in enumerate(positions)
    ]


def apply_question_order(
    questions: List[QuestionModel], order: Optional[List[Dict[str, Any]]]
) -> List[Tuple[int, QuestionModel]]:
    """
    Resolve a stored mapping against the current question bank.

    Entries carrying a questionId are matched by identity, so edits to the quiz
    after the session started cannot shift grading onto another question.
    Older entries without an id fall back to their canonical position.
    Entries that no longer resolve are dropped.
    """
    base = canonical_questions(questions)
    if not order:
        order = identity_order(base)

    by_id = {q.id: q for q in base if q.id is not None}
    resolved: List[Tuple[int, QuestionModel]] = []
    for entry in order:
        original = int(entry.get("originalIndex", -1))
        qid = entry.get("questionId")
        if qid is not None:
            q = by_id.get(int(qid))
            if q is None:
                logger.warning("question %s is no longer in the quiz; skipped", qid)
                continue
        elif 0 <= original < len(base):
            q = base[original]
        else:
            logger.warning("order entry %s is out of range; skipped", entry)
            continue
        resolved.append((original, q))
    return resolved
