"""
estimate-flow: project-description matching and branching questionnaires
for contractor estimates.
"""

from .branching import QuestionFlowEngine, FlowState, FlowStep
from .catalog import load_catalog, default_catalog
from .config import FlowConfig
from .errors import EstimateFlowError, CatalogError
from .matcher import CategoryMatcher, CategoryMatch, CategorySuggestion

__version__ = "0.1.0"

__all__ = [
    "QuestionFlowEngine",
    "FlowState",
    "FlowStep",
    "load_catalog",
    "default_catalog",
    "FlowConfig",
    "EstimateFlowError",
    "CatalogError",
    "CategoryMatcher",
    "CategoryMatch",
    "CategorySuggestion",
]
