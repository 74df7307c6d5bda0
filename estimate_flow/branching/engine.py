"""
Question Flow Engine - walks matched category question-sets.

The engine drives a visitor through one or more CategoryQuestionSet in
order. Inside a set, answers follow each option's target:
- goto: jump to that question
- END: this branch of the set is done
- NEXT_BRANCH: skip the rest of this set
- no target: the positionally next question

A multiple-choice answer can open several branches at once. The first is
visited straight away and the rest are queued; the set only ends once the
queue is empty.

Every call resolves fully before returning and reports what happened in a
FlowStep. Bad calls never raise; they come back with accepted=False and
leave the engine untouched.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..config import FlowConfig
from ..errors import CatalogError
from ..schemas.questions import (
    AnswerRecord,
    AnswersState,
    CategoryQuestionSet,
    Question,
    QuestionOption,
    TargetKind,
    answers_from_dict,
    answers_to_dict,
)
from .analyzer import expected_question_count
from .progress import ProgressSmoother, raw_progress

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """Where the engine is in the questionnaire."""
    IDLE = "idle"                              # Not started yet
    LOADING_SET = "loading_set"                # Preparing the current set
    AWAITING_ANSWER = "awaiting_answer"        # A question is on screen
    BRANCH_TRANSITION = "branch_transition"    # Leaving a branch
    ADVANCING_QUESTION = "advancing_question"  # Moving within a set
    ADVANCING_SET = "advancing_set"            # Moving to the next set
    COMPLETE = "complete"                      # Nothing left to ask


@dataclass
class FlowStep:
    """Outcome of one engine call."""
    accepted: bool
    state: FlowState
    question_id: Optional[str] = None
    transitions: List[FlowState] = field(default_factory=list)  # In order
    reason: str = ""
    warnings: List[str] = field(default_factory=list)


@dataclass
class FlowCursor:
    """Traversal position."""
    current_set_index: int = 0
    current_question_id: Optional[str] = None
    # Extra branch targets from a multiple-choice answer, visited in order
    queued_next_questions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_set_index": self.current_set_index,
            "current_question_id": self.current_question_id,
            "queued_next_questions": list(self.queued_next_questions),
        }


class QuestionFlowEngine:
    """
    Drives a visitor through ordered category question-sets.

    Usage:
        engine = QuestionFlowEngine(matcher.score(description, catalog))
        engine.start()
        while not engine.is_complete:
            question = engine.current_question
            engine.submit_answer(question.id, [value])
            if question.is_multiple_choice:
                engine.confirm_multiple_choice()
            engine.recompute_progress()
        lead_answers = engine.answers
    """

    def __init__(
        self,
        question_sets: Optional[Iterable[Any]] = None,
        on_complete: Optional[Callable[[AnswersState], None]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        on_warning: Optional[Callable[[str], None]] = None,
        config: Optional[FlowConfig] = None
    ):
        """
        Initialize the engine.

        Args:
            question_sets: Matched CategoryQuestionSet (or dicts) in visit order
            on_complete: Called once with the final answers
            on_progress: Called with the raw 0-100 value on every recompute
            on_warning: Called with each non-fatal warning message
            config: Smoothing settings
        """
        self.config = config or FlowConfig()
        self.on_complete = on_complete
        self.on_progress = on_progress
        self.on_warning = on_warning

        self.state = FlowState.IDLE
        self.cursor = FlowCursor()
        self.answers: AnswersState = {}
        self.warnings: List[str] = []
        self.progress = ProgressSmoother.from_config(self.config)

        self._sequence: List[Question] = []
        self._expected_in_set = 0
        self._transitions: List[FlowState] = []
        self._call_warnings: List[str] = []
        self._completion_sent = False

        self.question_sets: List[CategoryQuestionSet] = []
        for entry in question_sets or []:
            if isinstance(entry, CategoryQuestionSet):
                self.question_sets.append(entry)
                continue
            try:
                self.question_sets.append(CategoryQuestionSet.from_dict(entry))
            except CatalogError as e:
                self._warn(f"Skipping question set: {e}")

    # ── Read-only views ──────────────────────────────────────────────────

    @property
    def current_set_index(self) -> int:
        return self.cursor.current_set_index

    @property
    def current_question_id(self) -> Optional[str]:
        return self.cursor.current_question_id

    @property
    def queued_next_questions(self) -> List[str]:
        return list(self.cursor.queued_next_questions)

    @property
    def current_set(self) -> Optional[CategoryQuestionSet]:
        if 0 <= self.cursor.current_set_index < len(self.question_sets):
            return self.question_sets[self.cursor.current_set_index]
        return None

    @property
    def current_question(self) -> Optional[Question]:
        return self._find_question(self.cursor.current_question_id)

    @property
    def current_set_answers(self) -> Dict[str, AnswerRecord]:
        current_set = self.current_set
        if current_set is None:
            return {}
        return dict(self.answers.get(current_set.category, {}))

    @property
    def current_stage(self) -> int:
        return min(self.cursor.current_set_index + 1, len(self.question_sets))

    @property
    def total_stages(self) -> int:
        return len(self.question_sets)

    @property
    def is_complete(self) -> bool:
        return self.state == FlowState.COMPLETE

    @property
    def has_follow_up_question(self) -> bool:
        """Whether anything may follow the question on screen."""
        if self.is_complete:
            return False
        if self.cursor.current_set_index < len(self.question_sets) - 1:
            return True
        if self.cursor.queued_next_questions:
            return True
        question = self.current_question
        if question is None:
            return False
        if question.is_multiple_choice:
            return any(question.target_for(o).is_goto for o in question.options)
        return self._sequence.index(question) < len(self._sequence) - 1

    # ── Commands ─────────────────────────────────────────────────────────

    def start(self) -> FlowStep:
        """Load the first set. An empty flow completes immediately."""
        self._begin()
        if self.state != FlowState.IDLE:
            return self._reject("Flow already started")
        self._load_set()
        return self._step()

    def submit_answer(self, question_id: str, selected_values) -> FlowStep:
        """
        Record an answer for the question on screen.

        Yes/no and single-choice answers advance immediately. A
        multiple-choice answer is only recorded; call
        confirm_multiple_choice() once the visitor is done selecting.
        """
        self._begin()
        if self.state != FlowState.AWAITING_ANSWER:
            return self._reject(f"Not awaiting an answer (state: {self.state.value})")

        question = self.current_question
        if question is None or question.id != question_id:
            return self._reject(f"Question {question_id!r} is not the current question")

        if isinstance(selected_values, str):
            selected_values = [selected_values]

        selected: List[QuestionOption] = []
        for value in selected_values or []:
            option = question.find_option(value)
            if option is None:
                return self._reject(f"{value!r} is not an option of {question.id!r}")
            if not any(option is s for s in selected):
                selected.append(option)

        if not question.is_multiple_choice and len(selected) != 1:
            return self._reject(f"{question.id!r} takes exactly one answer")

        self._record(question, selected)

        if not question.is_multiple_choice:
            self._navigate_single(question, selected[0])

        return self._step()

    def confirm_multiple_choice(self) -> FlowStep:
        """Follow the branches opened by the current multiple-choice answer."""
        self._begin()
        if self.state != FlowState.AWAITING_ANSWER:
            return self._reject(f"Not awaiting an answer (state: {self.state.value})")

        question = self.current_question
        if question is None or not question.is_multiple_choice:
            return self._reject("Current question is not multiple choice")

        record = self.current_set_answers.get(question.id)
        if record is None or not record.answers:
            return self._reject("No options selected")

        targets: List[str] = []
        next_branch = False
        for value in record.answers:
            option = question.find_option(value)
            if option is None:
                continue
            target = question.target_for(option)
            if target.kind == TargetKind.GOTO:
                if self._find_question(target.question_id) is None:
                    self._warn(f"Option {option.value!r} points at unknown question {target.question_id!r}")
                elif target.question_id not in targets:
                    targets.append(target.question_id)
            elif target.kind == TargetKind.NEXT_BRANCH:
                next_branch = True

        if targets:
            rest = targets[1:]
            earlier = [q for q in self.cursor.queued_next_questions if q not in targets]
            self.cursor.queued_next_questions = rest + earlier
            self._enter(FlowState.ADVANCING_QUESTION)
            self._goto(targets[0])
        elif next_branch:
            self._branch_transition()
        else:
            self._finish_branch()

        return self._step()

    def recompute_progress(self) -> float:
        """Recalculate raw progress, feed the smoother and the progress callback."""
        target = self._raw_progress()
        self.progress.set_target(target)
        if self.on_progress:
            self.on_progress(target)
        return target

    # ── Transitions ──────────────────────────────────────────────────────

    def _load_set(self):
        while True:
            current_set = self.current_set
            if current_set is None:
                self._complete()
                return

            self._enter(FlowState.LOADING_SET)
            sequence = current_set.sorted_questions()
            if not sequence:
                self._warn(f"No questions available for {current_set.category!r}")
                self._enter(FlowState.ADVANCING_SET)
                self.cursor.current_set_index += 1
                continue

            self._sequence = sequence
            self._expected_in_set = expected_question_count(sequence)
            self.cursor.queued_next_questions = []
            self._goto(sequence[0].id)
            return

    def _navigate_single(self, question: Question, option: QuestionOption):
        target = question.target_for(option)

        if target.kind == TargetKind.NEXT_BRANCH:
            self._branch_transition()
        elif target.kind == TargetKind.END_SET:
            self._finish_branch()
        elif target.kind == TargetKind.GOTO and self._find_question(target.question_id):
            self._enter(FlowState.ADVANCING_QUESTION)
            self._goto(target.question_id)
        else:
            if target.kind == TargetKind.GOTO:
                self._warn(f"Option {option.value!r} points at unknown question {target.question_id!r}")
            self._advance_positionally(question)

    def _advance_positionally(self, question: Question):
        index = self._sequence.index(question)
        if index + 1 < len(self._sequence):
            self._enter(FlowState.ADVANCING_QUESTION)
            self._goto(self._sequence[index + 1].id)
        else:
            self._finish_branch()

    def _finish_branch(self):
        """The active branch ran out: take a queued branch or leave the set."""
        if self.cursor.queued_next_questions:
            self._branch_transition()
        else:
            self._advance_set()

    def _branch_transition(self):
        self._enter(FlowState.BRANCH_TRANSITION)
        while self.cursor.queued_next_questions:
            head = self.cursor.queued_next_questions.pop(0)
            if self._find_question(head) is not None:
                self._goto(head)
                return
            self._warn(f"Queued question {head!r} is not in this set")
        self._advance_set()

    def _advance_set(self):
        self._enter(FlowState.ADVANCING_SET)
        self.cursor.current_set_index += 1
        self.cursor.current_question_id = None
        self.cursor.queued_next_questions = []
        self._load_set()

    def _goto(self, question_id: str):
        self.cursor.current_question_id = question_id
        if question_id in self.cursor.queued_next_questions:
            self.cursor.queued_next_questions.remove(question_id)
        self._enter(FlowState.AWAITING_ANSWER)

    def _complete(self):
        self.cursor.current_question_id = None
        self.cursor.queued_next_questions = []
        self._sequence = []
        self._expected_in_set = 0
        self._enter(FlowState.COMPLETE)
        if not self._completion_sent:
            self._completion_sent = True
            logger.info("Question flow complete (%d categories answered)", len(self.answers))
            if self.on_complete:
                self.on_complete(self.answers)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _record(self, question: Question, selected: List[QuestionOption]):
        category = self.current_set.category
        record = AnswerRecord(
            question=question.question,
            type=question.type,
            answers=[o.value for o in selected],
            options=[QuestionOption(o.label, o.value, o.next) for o in selected],
        )
        # Replace rather than mutate so earlier snapshots stay valid
        self.answers = {
            **self.answers,
            category: {**self.answers.get(category, {}), question.id: record},
        }

    def _find_question(self, question_id: Optional[str]) -> Optional[Question]:
        if not question_id:
            return None
        for question in self._sequence:
            if question.id == question_id:
                return question
        return None

    def _raw_progress(self) -> float:
        if self.state == FlowState.COMPLETE:
            return 100.0
        if self.state == FlowState.IDLE:
            return 0.0
        return raw_progress(
            set_index=self.cursor.current_set_index,
            total_sets=len(self.question_sets),
            answered_in_set=len(self.current_set_answers),
            expected_in_set=self._expected_in_set,
        )

    def _begin(self):
        self._transitions = []
        self._call_warnings = []

    def _enter(self, state: FlowState):
        logger.debug("Flow %s -> %s", self.state.value, state.value)
        self.state = state
        self._transitions.append(state)

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)
        self._call_warnings.append(message)
        if self.on_warning:
            self.on_warning(message)

    def _step(self) -> FlowStep:
        return FlowStep(
            accepted=True,
            state=self.state,
            question_id=self.cursor.current_question_id,
            transitions=list(self._transitions),
            warnings=list(self._call_warnings),
        )

    def _reject(self, reason: str) -> FlowStep:
        logger.debug("Ignored flow call: %s", reason)
        return FlowStep(
            accepted=False,
            state=self.state,
            question_id=self.cursor.current_question_id,
            reason=reason,
        )

    # ── Save / resume ────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable snapshot of the whole flow."""
        return {
            "state": self.state.value,
            "cursor": self.cursor.to_dict(),
            "question_sets": [qs.to_dict() for qs in self.question_sets],
            "answers": answers_to_dict(self.answers),
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **kwargs) -> "QuestionFlowEngine":
        """Restore a snapshot made by to_dict(). Callbacks go in kwargs."""
        engine = cls(data.get("question_sets", []), **kwargs)
        engine.answers = answers_from_dict(data.get("answers", {}))
        engine.warnings = list(data.get("warnings", []))

        cursor = data.get("cursor", {})
        engine.cursor = FlowCursor(
            current_set_index=int(cursor.get("current_set_index", 0)),
            current_question_id=cursor.get("current_question_id"),
            queued_next_questions=list(cursor.get("queued_next_questions", [])),
        )

        state = FlowState(data.get("state", FlowState.IDLE.value))
        if state == FlowState.COMPLETE:
            engine.state = FlowState.COMPLETE
            engine._completion_sent = True
        elif state != FlowState.IDLE and engine.current_set is not None:
            engine._sequence = engine.current_set.sorted_questions()
            engine._expected_in_set = expected_question_count(engine._sequence)
            if engine.current_question is None:
                raise CatalogError("Snapshot cursor points at an unknown question")
            engine.state = FlowState.AWAITING_ANSWER

        return engine
