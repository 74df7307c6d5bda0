"""
Question-set schema for the estimate questionnaire.

A category question-set is a small directed graph: every question carries a
list of options, and every option may name where the flow goes next.

Raw "next" strings coming from the catalog are resolved once into a
NextTarget when the option is built, so the flow engine never re-parses
sentinel strings while walking the graph.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import CatalogError


END_SENTINEL = "END"
NEXT_BRANCH_SENTINEL = "NEXT_BRANCH"


class QuestionType(str, Enum):
    """How a question is answered."""
    YES_NO = "yes_no"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"


class TargetKind(str, Enum):
    """Where an answer sends the flow."""
    GOTO = "goto"                  # Jump to a question id in the same set
    END_SET = "end_set"            # Terminate this question-set
    NEXT_BRANCH = "next_branch"    # Terminate this set, move to next category
    FALLTHROUGH = "fallthrough"    # Positionally next question


@dataclass(frozen=True)
class NextTarget:
    """Resolved edge target of an option (or a question default)."""
    kind: TargetKind
    question_id: str = ""

    @classmethod
    def parse(cls, raw: Optional[str]) -> "NextTarget":
        """Resolve a raw catalog "next" string."""
        if raw is None:
            return FALLTHROUGH
        value = str(raw).strip()
        if not value:
            return FALLTHROUGH
        if value == END_SENTINEL:
            return END_SET
        if value == NEXT_BRANCH_SENTINEL:
            return NEXT_BRANCH
        return cls(TargetKind.GOTO, value)

    @property
    def is_goto(self) -> bool:
        return self.kind == TargetKind.GOTO

    def to_raw(self) -> Optional[str]:
        """Inverse of parse()."""
        if self.kind == TargetKind.GOTO:
            return self.question_id
        if self.kind == TargetKind.END_SET:
            return END_SENTINEL
        if self.kind == TargetKind.NEXT_BRANCH:
            return NEXT_BRANCH_SENTINEL
        return None


FALLTHROUGH = NextTarget(TargetKind.FALLTHROUGH)
END_SET = NextTarget(TargetKind.END_SET)
NEXT_BRANCH = NextTarget(TargetKind.NEXT_BRANCH)


@dataclass
class QuestionOption:
    """A selectable answer."""
    label: str
    value: str
    next: Optional[str] = None
    target: NextTarget = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.target = NextTarget.parse(self.next)

    def to_dict(self) -> Dict[str, Any]:
        data = {"label": self.label, "value": self.value}
        if self.next:
            data["next"] = self.next
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "QuestionOption":
        # Bare strings show up in older catalogs as label == value
        if isinstance(data, str):
            return cls(label=data, value=data)
        if not isinstance(data, dict) or "value" not in data:
            raise CatalogError(f"Invalid option: {data!r}")
        value = str(data["value"])
        return cls(
            label=str(data.get("label", value)),
            value=value,
            next=data.get("next") or None,
        )


@dataclass
class Question:
    """A single questionnaire question."""
    id: str
    order: float
    question: str
    type: QuestionType
    options: List[QuestionOption]
    next: Optional[str] = None  # Default target for options without their own
    default_target: NextTarget = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.type = QuestionType(self.type)
        self.default_target = NextTarget.parse(self.next)

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == QuestionType.MULTIPLE_CHOICE

    def find_option(self, value: str) -> Optional[QuestionOption]:
        """Look up an option by value, case-insensitively."""
        wanted = str(value).strip().lower()
        for option in self.options:
            if option.value.lower() == wanted:
                return option
        return None

    def target_for(self, option: QuestionOption) -> NextTarget:
        """Effective target of an option, falling back to the question default."""
        if option.target.kind != TargetKind.FALLTHROUGH:
            return option.target
        return self.default_target

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "order": self.order,
            "question": self.question,
            "type": self.type.value,
            "options": [opt.to_dict() for opt in self.options],
        }
        if self.next:
            data["next"] = self.next
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Question":
        if not isinstance(data, dict):
            raise CatalogError(f"Invalid question: {data!r}")
        try:
            question_id = str(data["id"])
            question_type = QuestionType(data.get("type", QuestionType.SINGLE_CHOICE.value))
            order = float(data.get("order", 0))
        except (KeyError, ValueError, TypeError) as e:
            raise CatalogError(f"Invalid question {data.get('id')!r}: {e}") from e

        raw_options = data.get("options") or []
        if not isinstance(raw_options, list):
            raise CatalogError(f"Question {question_id!r} options must be a list")
        options = [QuestionOption.from_dict(o) for o in raw_options]
        if not options:
            raise CatalogError(f"Question {question_id!r} has no options")

        return cls(
            id=question_id,
            order=int(order) if order.is_integer() else order,
            question=str(data.get("question", "")),
            type=question_type,
            options=options,
            next=data.get("next") or None,
        )


@dataclass
class CategoryQuestionSet:
    """Questions asked for one contractor service category."""
    category: str
    keywords: List[str] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)

    def sorted_questions(self) -> List[Question]:
        """Questions in traversal fallback order (stable on ties)."""
        return sorted(self.questions, key=lambda q: q.order)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "keywords": list(self.keywords),
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CategoryQuestionSet":
        if not isinstance(data, dict):
            raise CatalogError(f"Invalid category entry: {data!r}")
        category = data.get("category")
        if not category or not isinstance(category, str):
            raise CatalogError("Category entry is missing its 'category' field")
        keywords = data.get("keywords") or []
        if not isinstance(keywords, list):
            raise CatalogError(f"Category {category!r} keywords must be a list")

        questions = data.get("questions") or []
        if not isinstance(questions, list):
            raise CatalogError(f"Category {category!r} questions must be a list")

        return cls(
            category=category,
            keywords=[str(k) for k in keywords],
            questions=[Question.from_dict(q) for q in questions],
        )


@dataclass
class AnswerRecord:
    """What the visitor picked for one question."""
    question: str
    type: QuestionType
    answers: List[str]
    options: List[QuestionOption]  # Only the selected ones

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "type": self.type.value,
            "answers": list(self.answers),
            "options": [opt.to_dict() for opt in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnswerRecord":
        return cls(
            question=data.get("question", ""),
            type=QuestionType(data["type"]),
            answers=list(data.get("answers", [])),
            options=[QuestionOption.from_dict(o) for o in data.get("options", [])],
        )


# category -> question id -> record
AnswersState = Dict[str, Dict[str, AnswerRecord]]


def answers_to_dict(answers: AnswersState) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """JSON-friendly copy of an AnswersState."""
    return {
        category: {qid: record.to_dict() for qid, record in records.items()}
        for category, records in answers.items()
    }


def answers_from_dict(data: Dict[str, Dict[str, Dict[str, Any]]]) -> AnswersState:
    return {
        category: {qid: AnswerRecord.from_dict(rec) for qid, rec in records.items()}
        for category, records in (data or {}).items()
    }
