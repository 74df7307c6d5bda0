"""
Schema definitions for the estimate questionnaire.
"""

from .questions import (
    QuestionType,
    TargetKind,
    NextTarget,
    QuestionOption,
    Question,
    CategoryQuestionSet,
    AnswerRecord,
    AnswersState,
    answers_to_dict,
    answers_from_dict,
)
from .default_questions import get_default_questions

__all__ = [
    "QuestionType",
    "TargetKind",
    "NextTarget",
    "QuestionOption",
    "Question",
    "CategoryQuestionSet",
    "AnswerRecord",
    "AnswersState",
    "answers_to_dict",
    "answers_from_dict",
    "get_default_questions",
]
