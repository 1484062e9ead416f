"""
Posterior distributions over the seabed parameters (rho, c, delta).

Both flavours expose the same query surface: mean, std, median,
quantile, density, log_density, sample and summary.
"""

import math
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import torch
import pyro.distributions as dist
from pyro.distributions import constraints
from scipy import stats
from torch.distributions import biject_to

from .. import config


class Posterior:
    """
    Base class for posterior distributions over (rho, c, delta).

    Subclasses implement `mean`, `std`, `quantile`, `log_density` and
    `sample`.
    """

    param_names = config.PARAMETER_NAMES

    def __init__(self, prior_bounds: Optional[Dict[str, Tuple[float, float]]] = None):
        self.prior_bounds = dict(config.PRIOR_BOUNDS)
        if prior_bounds is not None:
            self.prior_bounds.update(prior_bounds)

    def mean(self) -> np.ndarray:
        raise NotImplementedError

    def std(self) -> np.ndarray:
        raise NotImplementedError

    def quantile(self, q: float) -> np.ndarray:
        raise NotImplementedError

    def log_density(self, rho, c, delta) -> float:
        raise NotImplementedError

    def sample(self, n: int, seed: Optional[int] = None) -> np.ndarray:
        raise NotImplementedError

    def median(self) -> np.ndarray:
        return self.quantile(0.5)

    def density(self, rho, c, delta) -> float:
        """Posterior density at (rho, c, delta); 0 outside the prior box."""
        return math.exp(self.log_density(rho, c, delta))

    def _inside(self, values: Sequence[float], closed: bool = False) -> bool:
        for name, value in zip(self.param_names, values):
            low, high = self.prior_bounds[name]
            if closed and not low <= value <= high:
                return False
            if not closed and not low < value < high:
                return False
        return True

    def as_dict(self, values: Optional[np.ndarray] = None) -> Dict[str, float]:
        """Name a parameter vector (default: the posterior mean)."""
        if values is None:
            values = self.mean()
        return {name: float(v) for name, v in zip(self.param_names, values)}

    def summary(
        self,
        quantiles: Sequence[float] = (0.05, 0.5, 0.95),
    ) -> pd.DataFrame:
        """
        Posterior summary table.

        Returns
        -------
        summary : pd.DataFrame
            One row per parameter with mean, std and the requested quantiles
        """
        table = {"mean": self.mean(), "std": self.std()}
        for q in quantiles:
            table[f"q{100 * q:g}"] = self.quantile(q)
        return pd.DataFrame(table, index=list(self.param_names))


class GaussianPosterior(Posterior):
    """
    Mean-field posterior from a variational guide.

    Each parameter is Normal(loc, scale) in unconstrained space mapped
    onto its prior interval. Moments are computed by Gauss-Hermite
    quadrature, so `mean()` and `std()` are deterministic.

    Parameters
    ----------
    loc : torch.Tensor
        Unconstrained locations, one per parameter
    scale : torch.Tensor
        Unconstrained scales, one per parameter
    prior_bounds : Optional[Dict[str, Tuple[float, float]]]
        Prior intervals the guide was built on
    n_quadrature : int
        Number of Gauss-Hermite nodes
    """

    def __init__(
        self,
        loc: torch.Tensor,
        scale: torch.Tensor,
        prior_bounds: Optional[Dict[str, Tuple[float, float]]] = None,
        n_quadrature: int = 64,
    ):
        super().__init__(prior_bounds)
        self.loc = torch.as_tensor(loc, dtype=torch.float64).detach()
        self.scale = torch.as_tensor(scale, dtype=torch.float64).detach()
        if self.loc.shape != (len(self.param_names),) or self.scale.shape != self.loc.shape:
            raise ValueError(
                f"loc and scale must have shape ({len(self.param_names)},), "
                f"got {tuple(self.loc.shape)} and {tuple(self.scale.shape)}"
            )
        if torch.any(self.scale <= 0):
            raise ValueError("scale must be positive")

        nodes, weights = np.polynomial.hermite_e.hermegauss(n_quadrature)
        self._nodes = torch.as_tensor(nodes, dtype=torch.float64)
        self._weights = torch.as_tensor(weights / math.sqrt(2 * math.pi), dtype=torch.float64)

    def __repr__(self):
        return f"GaussianPosterior(mean={self.as_dict()})"

    def transform(self, name: str):
        low, high = self.prior_bounds[name]
        return biject_to(constraints.interval(low, high))

    def marginal(self, name: str) -> dist.TransformedDistribution:
        """Marginal posterior of one parameter."""
        i = self.param_names.index(name)
        return dist.TransformedDistribution(
            dist.Normal(self.loc[i], self.scale[i]),
            [self.transform(name)],
        )

    def _moments(self, name: str) -> Tuple[float, float]:
        i = self.param_names.index(name)
        x = self.transform(name)(self.loc[i] + self.scale[i] * self._nodes)
        m1 = torch.sum(self._weights * x)
        m2 = torch.sum(self._weights * (x - m1) ** 2)
        return float(m1), float(torch.sqrt(torch.clamp(m2, min=0.0)))

    def mean(self) -> np.ndarray:
        return np.array([self._moments(name)[0] for name in self.param_names])

    def std(self) -> np.ndarray:
        return np.array([self._moments(name)[1] for name in self.param_names])

    def quantile(self, q: float) -> np.ndarray:
        if not 0.0 < q < 1.0:
            raise ValueError(f"q must lie in (0, 1), got {q}")
        z = float(stats.norm.ppf(q))
        return np.array([
            float(self.transform(name)(self.loc[i] + self.scale[i] * z))
            for i, name in enumerate(self.param_names)
        ])

    def log_density(self, rho, c, delta) -> float:
        values = (float(rho), float(c), float(delta))
        if not self._inside(values):
            return -math.inf
        with torch.no_grad():
            return float(sum(
                self.marginal(name).log_prob(torch.tensor(v, dtype=torch.float64))
                for name, v in zip(self.param_names, values)
            ))

    def sample(self, n: int, seed: Optional[int] = None) -> np.ndarray:
        """
        Draw n parameter vectors.

        Returns
        -------
        samples : np.ndarray
            Shape (n, 3), columns ordered (rho, c, delta)
        """
        generator = torch.Generator()
        if seed is not None:
            generator.manual_seed(seed)
        else:
            generator.seed()
        eps = torch.randn((n, len(self.param_names)), generator=generator, dtype=torch.float64)
        u = self.loc + self.scale * eps
        columns = [
            self.transform(name)(u[:, i])
            for i, name in enumerate(self.param_names)
        ]
        return torch.stack(columns, dim=1).numpy()


class SamplePosterior(Posterior):
    """
    Posterior represented by MCMC draws.

    Density is estimated with a Gaussian kernel density estimate.

    Parameters
    ----------
    samples : Dict[str, array-like]
        Draws per parameter, all of equal length
    prior_bounds : Optional[Dict[str, Tuple[float, float]]]
        Prior box; the density is zero outside it
    """

    def __init__(
        self,
        samples: Dict[str, np.ndarray],
        prior_bounds: Optional[Dict[str, Tuple[float, float]]] = None,
    ):
        super().__init__(prior_bounds)
        columns = [
            np.asarray(
                samples[name].detach().cpu().numpy()
                if isinstance(samples[name], torch.Tensor) else samples[name],
                dtype=np.float64,
            ).ravel()
            for name in self.param_names
        ]
        if len({len(col) for col in columns}) != 1:
            raise ValueError("All parameters need the same number of draws")
        if len(columns[0]) < 2:
            raise ValueError("At least two draws are needed")
        self.samples = np.stack(columns, axis=1)
        self.samples.setflags(write=False)
        try:
            self._kde = stats.gaussian_kde(self.samples.T)
        except np.linalg.LinAlgError as exc:
            raise ValueError(f"Draws are degenerate, no density estimate: {exc}") from exc

    def __repr__(self):
        return f"SamplePosterior(n={len(self.samples)}, mean={self.as_dict()})"

    def mean(self) -> np.ndarray:
        return self.samples.mean(axis=0)

    def std(self) -> np.ndarray:
        return self.samples.std(axis=0, ddof=1)

    def quantile(self, q: float) -> np.ndarray:
        return np.quantile(self.samples, q, axis=0)

    def log_density(self, rho, c, delta) -> float:
        values = (float(rho), float(c), float(delta))
        if not self._inside(values, closed=True):
            return -math.inf
        return float(self._kde.logpdf(np.array(values).reshape(-1, 1))[0])

    def sample(self, n: int, seed: Optional[int] = None) -> np.ndarray:
        rng = np.random.default_rng(seed)
        idx = rng.integers(0, len(self.samples), size=n)
        return self.samples[idx].copy()
