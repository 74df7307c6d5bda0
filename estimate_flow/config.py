"""
Configuration for the estimate questionnaire.

Defaults live on the dataclass; from_env() overlays environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class FlowConfig:
    """Tunables shared by the matcher, the flow engine and the surfaces."""
    # Matching
    keyword_weight: int = 3                # Added per matched catalog keyword
    suggestion_threshold: float = 0.2      # Minimum confidence for suggest()
    fill_default_questions: bool = True    # Use built-in sets for empty categories

    # Progress smoothing
    smoothing_factor: float = 0.1          # Share of remaining distance per tick
    snap_threshold: float = 0.5            # Snap to target when this close

    # Catalog source
    catalog_path: Optional[str] = None
    catalog_url: Optional[str] = None
    catalog_api_key: Optional[str] = None
    catalog_timeout: int = 10

    @classmethod
    def from_env(cls) -> "FlowConfig":
        config = cls()
        config.catalog_path = os.getenv("ESTIMATE_FLOW_CATALOG_PATH") or None
        config.catalog_url = os.getenv("ESTIMATE_FLOW_CATALOG_URL") or None
        config.catalog_api_key = os.getenv("ESTIMATE_FLOW_CATALOG_KEY") or None

        fill_defaults = os.getenv("ESTIMATE_FLOW_FILL_DEFAULTS")
        if fill_defaults is not None:
            config.fill_default_questions = fill_defaults.strip().lower() in _TRUTHY

        return config
