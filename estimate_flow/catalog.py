"""
Category catalog loading.

A catalog is the list of CategoryQuestionSet the matcher scores against.
It can come from:
- in-memory dicts (a list of entries, or one row with a column per category)
- a JSON file on disk
- a remote REST endpoint returning the same JSON (e.g. a Supabase row)

Malformed entries are skipped and logged; only an unreadable source raises.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import requests

from .config import FlowConfig
from .errors import CatalogError
from .schemas.questions import CategoryQuestionSet

logger = logging.getLogger(__name__)


def parse_catalog(data: Any) -> List[CategoryQuestionSet]:
    """Build question-sets from decoded catalog JSON."""
    if isinstance(data, dict) and isinstance(data.get("categories"), list):
        data = data["categories"]

    # PostgREST wraps a single row in a list
    if (
        isinstance(data, list)
        and len(data) == 1
        and isinstance(data[0], dict)
        and "category" not in data[0]
    ):
        data = data[0]

    if isinstance(data, dict):
        entries = []
        for key, value in data.items():
            if not isinstance(value, dict):
                continue  # id / metadata columns
            entries.append({"category": key, **value})
    elif isinstance(data, list):
        entries = data
    else:
        raise CatalogError(f"Unsupported catalog shape: {type(data).__name__}")

    catalog = []
    for entry in entries:
        try:
            catalog.append(CategoryQuestionSet.from_dict(entry))
        except CatalogError as e:
            logger.warning("Skipping catalog entry: %s", e)
    return catalog


def load_catalog_file(path) -> List[CategoryQuestionSet]:
    """Read a JSON catalog from disk."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Could not read catalog {path}: {e}") from e
    return parse_catalog(data)


def fetch_catalog(
    url: str,
    api_key: Optional[str] = None,
    timeout: int = 10
) -> List[CategoryQuestionSet]:
    """Fetch a JSON catalog over HTTP."""
    headers = {"Accept": "application/json"}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"

    try:
        response = requests.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as e:
        raise CatalogError(f"Could not fetch catalog from {url}: {e}") from e
    except ValueError as e:
        raise CatalogError(f"Catalog at {url} is not valid JSON: {e}") from e

    return parse_catalog(data)


def load_catalog(config: Optional[FlowConfig] = None) -> List[CategoryQuestionSet]:
    """Load the configured catalog, falling back to the built-in one."""
    config = config or FlowConfig.from_env()

    if config.catalog_url:
        logger.info("Loading catalog from %s", config.catalog_url)
        return fetch_catalog(config.catalog_url, config.catalog_api_key, config.catalog_timeout)

    if config.catalog_path:
        logger.info("Loading catalog from %s", config.catalog_path)
        return load_catalog_file(config.catalog_path)

    return default_catalog()


# =============================================================================
# BUILT-IN CATALOG
# =============================================================================
DEFAULT_CATALOG = [
    {
        "category": "Kitchen Remodel",
        "keywords": ["kitchen", "cabinet", "countertop", "backsplash"],
        "questions": [],
    },
    {
        "category": "Mold Remediation",
        "keywords": ["mold", "mildew", "musty"],
        "questions": [],
    },
    {
        "category": "Interior Painting",
        "keywords": ["paint", "walls", "ceiling", "trim"],
        "questions": [
            {
                "id": "P1",
                "order": 1,
                "question": "How many rooms need painting?",
                "type": "single_choice",
                "options": [
                    {"label": "One room", "value": "one"},
                    {"label": "Two to four rooms", "value": "few"},
                    {"label": "Whole house", "value": "whole_house"},
                ],
            },
            {
                "id": "P2",
                "order": 2,
                "question": "Do the ceilings need painting too?",
                "type": "yes_no",
                "options": [
                    {"label": "Yes", "value": "yes", "next": "P3"},
                    {"label": "No", "value": "no", "next": "END"},
                ],
            },
            {
                "id": "P3",
                "order": 3,
                "question": "Are any ceilings higher than 10 feet?",
                "type": "yes_no",
                "options": [
                    {"label": "Yes", "value": "yes", "next": "END"},
                    {"label": "No", "value": "no", "next": "END"},
                ],
            },
        ],
    },
    {
        "category": "Roofing",
        "keywords": ["roof", "shingle", "gutter", "leak"],
        "questions": [
            {
                "id": "R1",
                "order": 1,
                "question": "What does the roof need?",
                "type": "multiple_choice",
                "options": [
                    {"label": "Leak repair", "value": "leak", "next": "R2"},
                    {"label": "Full replacement", "value": "replace", "next": "R3"},
                    {"label": "Gutters", "value": "gutters", "next": "NEXT_BRANCH"},
                ],
            },
            {
                "id": "R2",
                "order": 2,
                "question": "Where is the leak showing?",
                "type": "single_choice",
                "options": [
                    {"label": "Ceiling stain", "value": "ceiling", "next": "END"},
                    {"label": "Attic", "value": "attic", "next": "END"},
                    {"label": "Not sure", "value": "unknown", "next": "END"},
                ],
            },
            {
                "id": "R3",
                "order": 3,
                "question": "What roofing material do you want?",
                "type": "single_choice",
                "options": [
                    {"label": "Asphalt shingle", "value": "asphalt", "next": "END"},
                    {"label": "Metal", "value": "metal", "next": "END"},
                    {"label": "Tile", "value": "tile", "next": "END"},
                ],
            },
        ],
    },
    {
        "category": "Bathroom Remodel",
        "keywords": ["bathroom", "shower", "bathtub", "vanity", "toilet"],
        "questions": [],
    },
]


def default_catalog() -> List[CategoryQuestionSet]:
    """Fresh copy of the built-in catalog."""
    return parse_catalog(DEFAULT_CATALOG)
