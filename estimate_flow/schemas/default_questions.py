"""
Default question-sets for categories whose catalog entry has no questions.

Each set is a small branching graph:
- Kitchen: project type decides which detail question follows
- Mold: signs observed, then where they were observed
- Anything else: a single scope question
"""

from typing import List

from .questions import Question, QuestionOption, QuestionType


# =============================================================================
# KITCHEN
# =============================================================================
def _kitchen_questions() -> List[Question]:
    return [
        Question(
            id="Q1",
            order=1,
            question="What type of kitchen project are you planning?",
            type=QuestionType.SINGLE_CHOICE,
            options=[
                QuestionOption("Full Remodel", "full_remodel", next="Q2"),
                QuestionOption("Partial Update", "partial_update", next="Q3"),
                QuestionOption("Appliance Installation", "appliance", next="NEXT_BRANCH"),
            ],
        ),
        Question(
            id="Q2",
            order=2,
            question="Which elements do you want to update?",
            type=QuestionType.MULTIPLE_CHOICE,
            options=[
                QuestionOption("Cabinets", "cabinets"),
                QuestionOption("Countertops", "countertops"),
                QuestionOption("Flooring", "flooring"),
                QuestionOption("Lighting", "lighting"),
                QuestionOption("Plumbing", "plumbing"),
            ],
            next="END",
        ),
        Question(
            id="Q3",
            order=3,
            question="What specific areas need work?",
            type=QuestionType.MULTIPLE_CHOICE,
            options=[
                QuestionOption("Cabinet Refinishing", "cabinet_refinish"),
                QuestionOption("Counter Replacement", "counter_replace"),
                QuestionOption("Backsplash", "backsplash"),
            ],
            next="END",
        ),
    ]


# =============================================================================
# MOLD
# =============================================================================
def _mold_questions() -> List[Question]:
    return [
        Question(
            id="M1",
            order=1,
            question="Have you noticed any of these signs?",
            type=QuestionType.MULTIPLE_CHOICE,
            options=[
                QuestionOption("Visible Mold Growth", "visible_mold"),
                QuestionOption("Musty Odors", "odors"),
                QuestionOption("Water Damage", "water_damage"),
                QuestionOption("Health Symptoms", "health_symptoms"),
            ],
            next="M2",
        ),
        Question(
            id="M2",
            order=2,
            question="Where have you noticed these issues?",
            type=QuestionType.MULTIPLE_CHOICE,
            options=[
                QuestionOption("Basement", "basement"),
                QuestionOption("Bathroom", "bathroom"),
                QuestionOption("Kitchen", "kitchen"),
                QuestionOption("Attic", "attic"),
                QuestionOption("Walls", "walls"),
            ],
            next="END",
        ),
    ]


# =============================================================================
# GENERIC
# =============================================================================
def _generic_questions() -> List[Question]:
    return [
        Question(
            id="default-1",
            order=1,
            question="What is the scope of your project?",
            type=QuestionType.SINGLE_CHOICE,
            options=[
                QuestionOption("Small Repair", "small", next="END"),
                QuestionOption("Medium Project", "medium", next="END"),
                QuestionOption("Large Project", "large", next="END"),
            ],
            next="END",
        ),
    ]


def get_default_questions(category: str) -> List[Question]:
    """Fresh default questions for a category name."""
    name = category.lower()
    if "kitchen" in name:
        return _kitchen_questions()
    if "mold" in name:
        return _mold_questions()
    return _generic_questions()
