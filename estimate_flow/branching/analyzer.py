"""
Branch-weight analysis of a question-set graph.

Estimates how many questions a visitor will see in a set, so the progress
bar moves at a believable pace. The estimate is the longest path from a
question to a leaf; it is a heuristic for display only.
"""

from typing import Dict, List, Optional, Set

from ..schemas.questions import Question, TargetKind


def build_branch_graph(questions: List[Question]) -> Dict[str, List[str]]:
    """
    Map each question id to the question ids an answer can lead to.

    Edges come from every option's effective target. A fallthrough edge
    points at the positionally next question; END and NEXT_BRANCH add no
    edge. Targets that are not in the set are dropped.
    """
    ordered = sorted(questions, key=lambda q: q.order)
    known = {q.id for q in ordered}
    graph: Dict[str, List[str]] = {}

    for index, question in enumerate(ordered):
        following = ordered[index + 1].id if index + 1 < len(ordered) else None
        children: List[str] = []

        for option in question.options:
            target = question.target_for(option)
            if target.kind == TargetKind.GOTO:
                child = target.question_id
            elif target.kind == TargetKind.FALLTHROUGH:
                child = following
            else:
                continue
            if child and child in known and child not in children:
                children.append(child)

        graph[question.id] = children

    return graph


def branch_weight(
    graph: Dict[str, List[str]],
    question_id: str,
    visited: Optional[Set[str]] = None
) -> int:
    """
    1 + the heaviest child weight.

    `visited` is shared across the whole depth-first walk, so a node reached
    a second time (a cycle, or the second arm of a diamond) counts 0.
    """
    if visited is None:
        visited = set()
    if question_id in visited:
        return 0
    visited.add(question_id)

    children = graph.get(question_id, [])
    return 1 + max((branch_weight(graph, child, visited) for child in children), default=0)


def analyze_branch_weights(questions: List[Question]) -> Dict[str, int]:
    """Weight of every question, each computed with a fresh visited set."""
    graph = build_branch_graph(questions)
    return {qid: branch_weight(graph, qid) for qid in graph}


def expected_question_count(questions: List[Question]) -> int:
    """Expected questions in a set: the weight of its first question."""
    if not questions:
        return 0
    first = min(questions, key=lambda q: q.order)
    return max(1, analyze_branch_weights(questions).get(first.id, 1))
