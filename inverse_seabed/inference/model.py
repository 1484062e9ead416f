"""
Generative model for geoacoustic inversion.

Defines p(theta, X) = p(theta) * p(X | theta)

where:
- theta = (rho, c, delta) are the seabed parameters, with uniform priors
- p(X | theta) is a Gaussian around the forward model predictions
"""

import math
from typing import Dict, Optional, Tuple

import numpy as np
import torch
import pyro
import pyro.distributions as dist

from .. import config
from ..errors import EmptyDataset, ShapeMismatch
from ..propagation.operator import ForwardModel


def _as_vector(values) -> torch.Tensor:
    return torch.as_tensor(np.array(values, dtype=np.float64)).reshape(-1)


class InversionProblem:
    """
    Bayesian inversion of seabed parameters from transmission loss.

    Generative process:
    1. Sample rho, c, delta from independent uniform priors
    2. Predict transmission loss mu_i = Y(r, D_i, F_i, rho, c, delta)
    3. Observe X ~ MultivariateNormal(mu, noise_std^2 * I)

    Parameters
    ----------
    depths : array-like
        Receiver depths D (m)
    frequencies : array-like
        Frequencies F (Hz)
    observations : array-like
        Measured transmission loss X (dB)
    range_m : float
        Known source-receiver range (m)
    noise_std : float
        Observation noise standard deviation (dB)
    prior_bounds : Optional[Dict[str, Tuple[float, float]]]
        Closed prior intervals per parameter
    forward_model : Optional[ForwardModel]
        Forward model (default: 7-ray Pekeris model)
    """

    param_names = config.PARAMETER_NAMES

    def __init__(
        self,
        depths,
        frequencies,
        observations,
        range_m: float = config.REFERENCE_RANGE_M,
        noise_std: float = config.NOISE_STD_DB,
        prior_bounds: Optional[Dict[str, Tuple[float, float]]] = None,
        forward_model: Optional[ForwardModel] = None,
    ):
        self.depths = _as_vector(depths)
        self.frequencies = _as_vector(frequencies)
        self.observations = _as_vector(observations)

        lengths = (len(self.depths), len(self.frequencies), len(self.observations))
        if len(set(lengths)) != 1:
            raise ShapeMismatch(
                f"len(D)={lengths[0]}, len(F)={lengths[1]}, len(X)={lengths[2]} differ"
            )
        if lengths[0] == 0:
            raise EmptyDataset("Cannot define a likelihood over zero observations")
        if noise_std <= 0:
            raise ValueError(f"noise_std must be > 0, got {noise_std}")

        self.n_obs = lengths[0]
        self.range_m = float(range_m)
        self.noise_std = float(noise_std)
        self.prior_bounds = dict(config.PRIOR_BOUNDS)
        if prior_bounds is not None:
            self.prior_bounds.update(prior_bounds)
        for name, (low, high) in self.prior_bounds.items():
            if not low < high:
                raise ValueError(f"Empty prior interval for {name}: ({low}, {high})")

        self.forward_model = forward_model if forward_model is not None else ForwardModel()
        self.covariance = self.noise_std ** 2 * torch.eye(self.n_obs, dtype=torch.float64)
        self._scale_tril = self.noise_std * torch.eye(self.n_obs, dtype=torch.float64)

    @classmethod
    def from_dataset(cls, dataset, **kwargs) -> "InversionProblem":
        """Build the problem from a MeasurementDataset."""
        kwargs.setdefault("range_m", dataset.range_m)
        return cls(
            dataset.depths,
            dataset.frequencies,
            dataset.transmission_loss,
            **kwargs,
        )

    def prior(self, name: str) -> dist.Uniform:
        low, high = self.prior_bounds[name]
        return dist.Uniform(
            torch.tensor(low, dtype=torch.float64),
            torch.tensor(high, dtype=torch.float64),
        )

    def predict(self, rho, c, delta) -> torch.Tensor:
        """Forward model predictions mu for every observation."""
        return self.forward_model(
            self.range_m, self.depths, self.frequencies, rho, c, delta
        )

    def likelihood(self, rho, c, delta) -> dist.MultivariateNormal:
        return dist.MultivariateNormal(
            self.predict(rho, c, delta),
            scale_tril=self._scale_tril,
        )

    def model(self):
        """
        Generative model p(theta, X), conditioned on the observations.
        """
        rho = pyro.sample("rho", self.prior("rho"))
        c = pyro.sample("c", self.prior("c"))
        delta = pyro.sample("delta", self.prior("delta"))

        pyro.sample("obs", self.likelihood(rho, c, delta), obs=self.observations)

    def in_support(self, rho, c, delta) -> bool:
        values = {"rho": rho, "c": c, "delta": delta}
        return all(
            low <= float(values[name]) <= high
            for name, (low, high) in self.prior_bounds.items()
        )

    def log_prior(self, rho, c, delta) -> float:
        """Log prior density; -inf outside the closed prior box."""
        if not self.in_support(rho, c, delta):
            return -math.inf
        return -sum(math.log(high - low) for low, high in self.prior_bounds.values())

    def log_likelihood(self, rho, c, delta) -> float:
        with torch.no_grad():
            return float(self.likelihood(rho, c, delta).log_prob(self.observations))

    def log_density(self, rho, c, delta) -> float:
        """
        Unnormalized log posterior: log p(theta) + log p(X | theta).

        Returns
        -------
        value : float
            -inf where the prior density is zero, finite otherwise
        """
        log_prior = self.log_prior(rho, c, delta)
        if math.isinf(log_prior):
            return log_prior
        return log_prior + self.log_likelihood(rho, c, delta)

    def sample_prior(
        self,
        n_samples: int = 100,
    ) -> Dict[str, torch.Tensor]:
        """
        Draw parameter vectors from the prior.

        Returns
        -------
        samples : Dict[str, torch.Tensor]
            One (n_samples,) tensor per parameter
        """
        return {
            name: self.prior(name).sample((n_samples,))
            for name in self.param_names
        }
