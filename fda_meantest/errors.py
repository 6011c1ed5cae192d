"""
Exception Taxonomy
==================

Configuration problems are detected before any simulation starts and abort
the run. Replication-level problems (an empty design or a kernel smoother
with no support at a query time) only invalidate the replication in which
they occur; the replication driver catches ``ReplicationError`` and counts
the failure.
"""


class FunctionalMeanTestError(Exception):
    """Base class for all errors raised by fda_meantest."""


class ConfigurationError(FunctionalMeanTestError, ValueError):
    """Invalid scenario parameter (e.g. J_trunc > J, R <= 0, sigma <= 0)."""


class ReplicationError(FunctionalMeanTestError):
    """A failure confined to a single Monte Carlo replication."""


class EmptyDesignError(ReplicationError):
    """A design-point draw produced zero observation times."""


class SingularSmoothingError(ReplicationError, ZeroDivisionError):
    """
    All Nadaraya-Watson kernel weights vanished at a query time.

    The estimate Σ wᵢ yᵢ / Σ wᵢ is undefined there and must not be
    coerced to zero.
    """

    def __init__(self, message: str, query_time: float = float("nan")):
        super().__init__(message)
        self.query_time = query_time


__all__ = [
    "FunctionalMeanTestError",
    "ConfigurationError",
    "ReplicationError",
    "EmptyDesignError",
    "SingularSmoothingError",
]
