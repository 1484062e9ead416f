"""
Analysis tools: posterior densities and predictive checks.
"""

from .densities import (
    conditional_density,
    plot_conditional_densities,
    posterior_predictive_check,
)

__all__ = [
    "conditional_density",
    "plot_conditional_densities",
    "posterior_predictive_check",
]
