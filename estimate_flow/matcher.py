"""
Category matching for project descriptions.

Turns a visitor's free-text project description into the ranked list of
category question-sets to walk through.

Two scorers:
- Keyword priority (score / best_match): every catalog keyword found in the
  description adds a fixed weight, kitchen categories add a hand-tuned
  bonus per matched keyword. Used to pick the question-sets.
- Confidence (suggest): position- and length-weighted keyword hits plus
  partial word matches. Used only to suggest a category when keyword
  priority finds nothing.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from .config import FlowConfig
from .errors import CatalogError
from .schemas.default_questions import get_default_questions
from .schemas.questions import CategoryQuestionSet

logger = logging.getLogger(__name__)


# ── Primary-domain weights ───────────────────────────────────────────────────

PRIMARY_DOMAIN_WEIGHTS: Dict[str, Dict[str, int]] = {
    "kitchen": {
        "kitchen": 5,
        "cabinet": 3,
        "countertop": 3,
        "remodel": 2,
        "backsplash": 2,
        "island": 2,
        "sink": 1,
        "appliance": 1,
    },
}


@dataclass
class CategoryMatch:
    """A scored category question-set."""
    question_set: CategoryQuestionSet
    priority: int
    matched_keywords: List[str] = field(default_factory=list)

    @property
    def category(self) -> str:
        return self.question_set.category


@dataclass
class CategorySuggestion:
    """Best guess at a category when no keyword matched outright."""
    category: str
    confidence: float


def _coerce_entries(categories: Iterable[Any]) -> List[CategoryQuestionSet]:
    """Accept CategoryQuestionSet objects or raw dicts; skip malformed ones."""
    entries = []
    for entry in categories or []:
        if isinstance(entry, CategoryQuestionSet):
            if not entry.category:
                logger.warning("Skipping catalog entry without a category name")
                continue
            if not isinstance(entry.keywords, list):
                logger.warning("Skipping category %r: keywords is not a list", entry.category)
                continue
            entries.append(entry)
            continue
        try:
            entries.append(CategoryQuestionSet.from_dict(entry))
        except CatalogError as e:
            logger.warning("Skipping catalog entry: %s", e)
    return entries


def _primary_domain(category: str) -> Optional[str]:
    name = category.lower()
    for domain in PRIMARY_DOMAIN_WEIGHTS:
        if domain in name:
            return domain
    return None


def consolidate(question_sets: List[CategoryQuestionSet]) -> List[CategoryQuestionSet]:
    """
    Collapse near-duplicate branches.

    Keeps the first set per lower-cased first word of the category name, so
    "Kitchen Remodel" and "Kitchen Backsplash" end up as one branch.
    """
    seen: Set[str] = set()
    consolidated = []
    for question_set in question_sets:
        tokens = question_set.category.lower().split()
        token = tokens[0] if tokens else ""
        if token in seen:
            continue
        seen.add(token)
        consolidated.append(question_set)
    return consolidated


class CategoryMatcher:
    """
    Scores project descriptions against a category catalog.

    Never raises on bad catalog entries: they are logged and skipped.
    """

    def __init__(self, config: Optional[FlowConfig] = None):
        self.config = config or FlowConfig()

    def rank(self, description: Optional[str], categories: Iterable[Any]) -> List[CategoryMatch]:
        """Every category with priority > 0, best first, one entry per category."""
        if not description or not description.strip():
            return []

        text = description.lower()
        matches: List[CategoryMatch] = []

        for question_set in _coerce_entries(categories):
            matched = [
                kw for kw in question_set.keywords
                if kw.strip() and kw.strip().lower() in text
            ]
            priority = len(matched) * self.config.keyword_weight

            # Table weights only boost keywords the category already matched
            domain = _primary_domain(question_set.category)
            if domain:
                table = PRIMARY_DOMAIN_WEIGHTS[domain]
                priority += sum(table.get(kw.strip().lower(), 0) for kw in matched)

            if priority > 0:
                logger.debug(
                    "Matched %s with priority %d (%s)",
                    question_set.category, priority, matched
                )
                matches.append(CategoryMatch(question_set, priority, matched))

        # sorted() is stable, so ties keep catalog order
        matches = sorted(matches, key=lambda m: m.priority, reverse=True)

        unique: List[CategoryMatch] = []
        seen: Set[str] = set()
        for match in matches:
            if match.category in seen:
                continue
            seen.add(match.category)
            unique.append(match)
        return unique

    def score(self, description: Optional[str], categories: Iterable[Any]) -> List[CategoryQuestionSet]:
        """
        Ranked, de-duplicated and consolidated question-sets for a description.

        An empty list means nothing matched and the visitor should pick a
        category by hand.
        """
        question_sets = [m.question_set for m in self.rank(description, categories)]
        question_sets = consolidate(question_sets)
        if self.config.fill_default_questions:
            question_sets = [self.with_default_questions(qs) for qs in question_sets]
        return question_sets

    def best_match(self, description: Optional[str], categories: Iterable[Any]) -> Optional[CategoryQuestionSet]:
        matches = self.score(description, categories)
        return matches[0] if matches else None

    def suggest(self, description: Optional[str], categories: Iterable[Any]) -> Optional[CategorySuggestion]:
        """Confidence-scored best category, or None below the threshold."""
        if not description:
            return None

        words = _normalize_words(description)
        best: Optional[CategorySuggestion] = None

        for question_set in _coerce_entries(categories):
            confidence = _confidence(description, words, question_set.keywords)
            logger.debug("Category %s confidence %.3f", question_set.category, confidence)
            if confidence > (best.confidence if best else 0):
                best = CategorySuggestion(question_set.category, confidence)

        if best and best.confidence >= self.config.suggestion_threshold:
            return best
        return None

    def with_default_questions(self, question_set: CategoryQuestionSet) -> CategoryQuestionSet:
        if question_set.questions:
            return question_set
        logger.info("Using default questions for %s", question_set.category)
        return CategoryQuestionSet(
            category=question_set.category,
            keywords=list(question_set.keywords),
            questions=get_default_questions(question_set.category),
        )


# ── Confidence scoring helpers ───────────────────────────────────────────────

def _normalize_words(text: str) -> List[str]:
    cleaned = re.sub(r"[^\w\s-]", "", text.lower())
    return [w for w in cleaned.split() if w]


def _position_weight(text: str, keyword: str) -> float:
    """Earlier mentions weigh more: 1.5 at the start down to 1.0 at the end."""
    index = text.lower().find(keyword.lower())
    if index == -1:
        return 0.0
    return 1.5 - (index / len(text)) * 0.5


def _is_substring_of_match(keyword: str, matches: List[str]) -> bool:
    return any(m != keyword and keyword.lower() in m.lower() for m in matches)


def _confidence(description: str, words: List[str], keywords: List[str]) -> float:
    keywords = [k for k in keywords if k.strip()]
    if not keywords:
        return 0.0

    text = description.lower()
    match_count = 0.0
    total_weight = 0.0
    matched: List[str] = []

    for keyword in keywords:
        if keyword.lower() in text and not _is_substring_of_match(keyword, matched):
            matched.append(keyword)
            length_weight = 1 + len(keyword) / 20
            total_weight += _position_weight(description, keyword) * length_weight
            match_count += 1

        parts = _normalize_words(keyword)
        if not parts:
            continue
        partial = [w for w in words if any(p in w for p in parts)]
        if partial:
            partial_weight = 0.5 * (len(partial) / len(parts))
            total_weight += partial_weight
            match_count += partial_weight

    if match_count <= 0:
        return 0.0
    return (total_weight / match_count) * (match_count / math.sqrt(len(keywords)))


def keywords_by_category(categories: Iterable[Any]) -> Dict[str, List[str]]:
    """category -> keywords for the valid entries of a catalog."""
    return {qs.category: list(qs.keywords) for qs in _coerce_entries(categories)}
