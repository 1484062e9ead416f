"""
Posterior densities and predictive checks for reporting.
"""

import logging
from typing import Dict, Optional, Sequence

import numpy as np
import torch
from scipy.integrate import trapezoid

from ..inference.model import InversionProblem
from ..inference.posterior import Posterior

logger = logging.getLogger(__name__)


def default_grid(
    posterior: Posterior,
    name: str,
    n_points: int = 200,
    width: float = 5.0,
) -> np.ndarray:
    """
    Grid of `n_points` values spanning mean +/- width * std, clipped to
    the prior interval.
    """
    i = posterior.param_names.index(name)
    low, high = posterior.prior_bounds[name]
    center, spread = posterior.mean()[i], posterior.std()[i]
    lo = max(low, center - width * spread)
    hi = min(high, center + width * spread)
    return np.linspace(lo, hi, n_points)


def conditional_density(
    posterior: Posterior,
    name: str,
    grid: Optional[Sequence[float]] = None,
    fixed: Optional[Dict[str, float]] = None,
    normalize: bool = False,
) -> np.ndarray:
    """
    Posterior density along one parameter, holding the others fixed.

    Parameters
    ----------
    posterior : Posterior
        Fitted posterior
    name : str
        Parameter to vary ('rho', 'c' or 'delta')
    grid : Optional[Sequence[float]]
        Values of `name` (default: `default_grid`)
    fixed : Optional[Dict[str, float]]
        Values of the other two parameters (default: posterior mean)
    normalize : bool
        Rescale so the curve integrates to one over the grid

    Returns
    -------
    density : np.ndarray
        Density at each grid point
    """
    if name not in posterior.param_names:
        raise ValueError(f"Unknown parameter: {name}")

    grid = default_grid(posterior, name) if grid is None else np.asarray(grid, dtype=float)
    point = posterior.as_dict()
    if fixed is not None:
        point.update({k: float(v) for k, v in fixed.items() if k != name})

    density = np.empty(len(grid))
    for j, value in enumerate(grid):
        point[name] = float(value)
        density[j] = posterior.density(**point)

    if normalize:
        area = trapezoid(density, grid)
        if area > 0:
            density = density / area

    return density


def plot_conditional_densities(
    posterior: Posterior,
    fixed: Optional[Dict[str, float]] = None,
    truth: Optional[Dict[str, float]] = None,
    n_points: int = 200,
    axes=None,
):
    """
    Plot the posterior density versus each of rho, c and delta.

    Parameters
    ----------
    posterior : Posterior
        Fitted posterior
    fixed : Optional[Dict[str, float]]
        Values the other parameters are held at (default: posterior mean)
    truth : Optional[Dict[str, float]]
        True values, drawn as vertical lines
    n_points : int
        Grid resolution
    axes : Optional[Sequence[matplotlib.axes.Axes]]
        Three axes to draw into

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    import matplotlib.pyplot as plt

    labels = {"rho": r"$\rho$", "c": r"$c$", "delta": r"$\delta$"}

    if axes is None:
        fig, axes = plt.subplots(1, len(posterior.param_names), figsize=(12, 3.5))
    else:
        fig = axes[0].figure

    for ax, name in zip(axes, posterior.param_names):
        grid = default_grid(posterior, name, n_points=n_points)
        density = conditional_density(posterior, name, grid=grid, fixed=fixed)
        ax.plot(grid, density, color="C0")
        if truth is not None and name in truth:
            ax.axvline(truth[name], color="C3", linestyle="--", label="truth")
            ax.legend(loc="upper right")
        ax.set_xlabel(labels.get(name, name))
        ax.set_ylabel("density")

    fig.tight_layout()
    return fig


def posterior_predictive_check(
    problem: InversionProblem,
    posterior: Posterior,
) -> Dict[str, float]:
    """
    Residuals between observations and predictions at the posterior mean.

    Returns
    -------
    metrics : Dict[str, float]
        rmse, mae and max_abs residual (dB), and the reduced chi-square
        under the problem's noise level
    """
    estimate = posterior.as_dict()
    with torch.no_grad():
        predicted = problem.predict(**estimate).cpu().numpy()
    residual = problem.observations.cpu().numpy() - predicted

    return {
        'rmse': float(np.sqrt(np.mean(residual ** 2))),
        'mae': float(np.mean(np.abs(residual))),
        'max_abs': float(np.max(np.abs(residual))),
        'reduced_chi2': float(np.mean((residual / problem.noise_std) ** 2)),
    }
