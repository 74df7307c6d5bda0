"""
Exceptions raised by estimate-flow.

The matcher and the flow engine never raise on structurally valid input;
these are for loaders and other places where bad input cannot be skipped.
"""


class EstimateFlowError(Exception):
    """Base class for all estimate-flow errors."""


class CatalogError(EstimateFlowError):
    """A category catalog (or one of its entries) could not be read."""
