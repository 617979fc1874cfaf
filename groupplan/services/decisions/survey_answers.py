"""
Per-question validation of survey answers.

Questions are stored as JSON and re-parsed into their tagged models here, so
every answer is checked against the declared question type before anything
is written. The returned mapping is JSON-ready.
"""

from typing import Any, Dict, List

import pydantic
from pydantic import TypeAdapter

from groupplan.core.errors import ValidationError
from groupplan.schemas.decisions.survey import (
    ChoiceQuestion,
    DateRangeAnswer,
    DateRangeQuestion,
    NumericQuestion,
    SurveyQuestion,
    TextQuestion,
)

_questions_adapter = TypeAdapter(List[SurveyQuestion])


def parse_questions(raw_questions: List[dict]) -> List[Any]:
    return _questions_adapter.validate_python(raw_questions)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _check_choice(question: ChoiceQuestion, value: Any) -> Any:
    if question.type == "single_choice":
        if not isinstance(value, str):
            raise ValidationError(f"Question '{question.id}' expects a single option")
        if value not in question.options:
            raise ValidationError(f"'{value}' is not an option of question '{question.id}'")
        return value

    if not _is_string_list(value):
        raise ValidationError(f"Question '{question.id}' expects a list of options")
    unknown = [item for item in value if item not in question.options]
    if unknown:
        raise ValidationError(f"Unknown options for question '{question.id}': {', '.join(unknown)}")
    if question.type == "ranking" and len(set(value)) != len(value):
        raise ValidationError(f"Ranking for question '{question.id}' repeats an option")
    return list(value)


def _check_number(question: NumericQuestion, value: Any) -> Any:
    if not _is_number(value):
        raise ValidationError(f"Question '{question.id}' expects a number")
    if question.min is not None and value < question.min:
        raise ValidationError(f"Answer to '{question.id}' is below {question.min}")
    if question.max is not None and value > question.max:
        raise ValidationError(f"Answer to '{question.id}' is above {question.max}")
    return value


def _check_date_range(question: DateRangeQuestion, value: Any) -> Dict[str, str]:
    try:
        answer = DateRangeAnswer.model_validate(value)
    except pydantic.ValidationError:
        raise ValidationError(f"Question '{question.id}' expects a {{start, end}} date range") from None
    if answer.start > answer.end:
        raise ValidationError(f"Date range for '{question.id}' ends before it starts")
    return {"start": answer.start.isoformat(), "end": answer.end.isoformat()}


def _check_answer(question: Any, value: Any) -> Any:
    if isinstance(question, ChoiceQuestion):
        return _check_choice(question, value)
    if isinstance(question, NumericQuestion):
        return _check_number(question, value)
    if isinstance(question, DateRangeQuestion):
        return _check_date_range(question, value)
    if isinstance(question, TextQuestion):
        if not isinstance(value, str):
            raise ValidationError(f"Question '{question.id}' expects text")
        return value
    raise ValidationError(f"Unsupported question type for '{question.id}'")


def validate_answers(raw_questions: List[dict], answers: Dict[str, Any]) -> Dict[str, Any]:
    questions = parse_questions(raw_questions)
    by_id = {question.id: question for question in questions}

    unknown = sorted(set(answers) - set(by_id))
    if unknown:
        raise ValidationError(f"Unknown question ids: {', '.join(unknown)}")

    missing = [q.id for q in questions if q.required and q.id not in answers]
    if missing:
        raise ValidationError(f"Missing answers for required questions: {', '.join(missing)}")

    return {
        question.id: _check_answer(question, answers[question.id])
        for question in questions
        if question.id in answers
    }
