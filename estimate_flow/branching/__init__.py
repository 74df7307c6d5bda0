"""
Branching question-flow for the estimate questionnaire.

This module provides:
- The flow engine that walks matched question-sets
- Branch-weight analysis used to estimate questions per set
- Progress calculation and smoothing
"""

from .analyzer import build_branch_graph, branch_weight, analyze_branch_weights, expected_question_count
from .engine import QuestionFlowEngine, FlowState, FlowStep, FlowCursor
from .progress import ProgressSmoother, raw_progress

__all__ = [
    "build_branch_graph",
    "branch_weight",
    "analyze_branch_weights",
    "expected_question_count",
    "QuestionFlowEngine",
    "FlowState",
    "FlowStep",
    "FlowCursor",
    "ProgressSmoother",
    "raw_progress",
]
