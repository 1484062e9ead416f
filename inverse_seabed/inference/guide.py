"""
Variational guide for posterior approximation.

The guide q(theta) approximates the true posterior p(theta | X).
"""

import math
from typing import Dict, Optional, Tuple

import torch
import torch.nn as nn
import torch.nn.functional as F
import pyro
import pyro.distributions as dist
from pyro.distributions import constraints
from torch.distributions import biject_to

from .. import config
from .posterior import GaussianPosterior


def interval_transform(low: float, high: float):
    """Bijection from the real line onto the open interval (low, high)."""
    return biject_to(constraints.interval(low, high))


class MeanFieldGuide(nn.Module):
    """
    Mean-field Gaussian guide in unconstrained space (ADVI).

    Each seabed parameter gets an independent Normal(loc, scale) on the
    real line, pushed through a sigmoid-affine bijection onto its prior
    interval.

    Parameters
    ----------
    prior_bounds : Optional[Dict[str, Tuple[float, float]]]
        Prior interval per parameter (default: reference priors)
    init_values : Optional[Dict[str, float]]
        Starting point in constrained space (default: interval midpoints)
    init_scale : float
        Initial scale of every unconstrained Normal
    """

    def __init__(
        self,
        prior_bounds: Optional[Dict[str, Tuple[float, float]]] = None,
        init_values: Optional[Dict[str, float]] = None,
        init_scale: float = config.DEFAULT_INIT_SCALE,
    ):
        super().__init__()
        if init_scale <= 0:
            raise ValueError(f"init_scale must be > 0, got {init_scale}")

        self.param_names = config.PARAMETER_NAMES
        self.prior_bounds = dict(config.PRIOR_BOUNDS)
        if prior_bounds is not None:
            self.prior_bounds.update(prior_bounds)

        init_values = dict(init_values or {})
        loc = []
        for name in self.param_names:
            low, high = self.prior_bounds[name]
            value = init_values.get(name, 0.5 * (low + high))
            # keep the starting point strictly inside the interval
            margin = 1e-6 * (high - low)
            value = min(max(float(value), low + margin), high - margin)
            u = self.transform(name).inv(torch.tensor(value, dtype=torch.float64))
            loc.append(u)

        self.loc = nn.Parameter(torch.stack(loc))
        # softplus^-1(init_scale)
        raw = math.log(math.expm1(init_scale))
        self.raw_scale = nn.Parameter(
            torch.full((len(self.param_names),), raw, dtype=torch.float64)
        )

    def transform(self, name: str):
        low, high = self.prior_bounds[name]
        return interval_transform(low, high)

    @property
    def scale(self) -> torch.Tensor:
        return F.softplus(self.raw_scale) + 1e-8

    def guide(self):
        """
        Mean-field guide q(rho) q(c) q(delta).
        """
        pyro.module("seabed_guide", self)

        scale = self.scale
        for i, name in enumerate(self.param_names):
            pyro.sample(
                name,
                dist.TransformedDistribution(
                    dist.Normal(self.loc[i], scale[i]),
                    [self.transform(name)],
                ),
            )

    def forward(self):
        """
        Forward pass (just calls guide).
        """
        return self.guide()

    def posterior(self) -> GaussianPosterior:
        """Freeze the current variational parameters into a posterior."""
        return GaussianPosterior(
            loc=self.loc.detach().clone(),
            scale=self.scale.detach().clone(),
            prior_bounds=self.prior_bounds,
        )
