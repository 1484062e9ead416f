"""
Inverse inference module: Solves the inverse problem p(theta | X).

Given measured transmission loss X, infer the posterior distribution
over the seabed parameters theta = (rho, c, delta).
"""

from .model import InversionProblem
from .guide import MeanFieldGuide
from .posterior import Posterior, GaussianPosterior, SamplePosterior
from .trainer import InversionTrainer, EarlyStopping
from .driver import InversionResult, fit_seabed_model, find_initial_values, quick_fit

__all__ = [
    "InversionProblem",
    "MeanFieldGuide",
    "Posterior",
    "GaussianPosterior",
    "SamplePosterior",
    "InversionTrainer",
    "EarlyStopping",
    "InversionResult",
    "fit_seabed_model",
    "find_initial_values",
    "quick_fit",
]
