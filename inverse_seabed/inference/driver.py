"""
Main fitting function: dataset in, posterior out.

This is the primary user-facing entry point for seabed inversion.
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import torch
import pyro
from pyro.infer import MCMC, NUTS
from pyro.infer.autoguide import init_to_value

from .. import config
from ..errors import InferenceFailure, InferenceNonconvergence
from ..validation.synthetic import MeasurementDataset
from .guide import MeanFieldGuide
from .model import InversionProblem
from .posterior import Posterior, SamplePosterior
from .trainer import EarlyStopping, InversionTrainer

logger = logging.getLogger(__name__)


@dataclass
class InversionResult:
    """
    Outcome of `fit_seabed_model`.

    Attributes
    ----------
    posterior : Posterior
        Approximate posterior over (rho, c, delta)
    problem : InversionProblem
        The problem that was inverted
    method : str
        'svi' or 'nuts'
    converged : bool
        False if the engine reported a degraded result
    loss_history : List[float]
        ELBO loss per SVI step (empty for NUTS)
    diagnostics : Dict
        Engine-specific diagnostics
    """

    posterior: Posterior
    problem: InversionProblem
    method: str
    converged: bool
    loss_history: List[float] = field(default_factory=list)
    diagnostics: Dict = field(default_factory=dict)

    def estimate(self) -> Dict[str, float]:
        """Posterior mean keyed by parameter name."""
        return self.posterior.as_dict()


def find_initial_values(
    problem: InversionProblem,
    num_samples: int = config.DEFAULT_NUM_INIT_SAMPLES,
) -> Dict[str, float]:
    """
    Screen prior draws and return the one with the highest log density.

    Parameters
    ----------
    problem : InversionProblem
        Problem to screen
    num_samples : int
        Number of prior draws

    Returns
    -------
    init_values : Dict[str, float]
        Best draw in constrained space
    """
    if num_samples < 1:
        raise ValueError(f"num_samples must be >= 1, got {num_samples}")

    draws = problem.sample_prior(num_samples)
    best, best_value = None, -math.inf
    for i in range(num_samples):
        values = {name: float(draws[name][i]) for name in problem.param_names}
        log_p = problem.log_density(**values)
        if log_p > best_value:
            best, best_value = values, log_p

    if best is None:
        raise InferenceFailure("No prior draw has a finite log density")

    logger.info(f"Initial values from {num_samples} prior draws: {best} (log p = {best_value:.2f})")
    return best


def _run_svi(problem, init_values, n_steps, learning_rate, lr_decay,
             num_particles, init_scale, early_stopping, verbose):
    # a stored 'seabed_guide' from an earlier fit would shadow the new guide
    pyro.clear_param_store()
    guide = MeanFieldGuide(
        prior_bounds=problem.prior_bounds,
        init_values=init_values,
        init_scale=init_scale,
    )
    trainer = InversionTrainer(
        problem,
        guide,
        learning_rate=learning_rate,
        lrd=lr_decay ** (1.0 / n_steps),
        num_particles=num_particles,
    )

    logger.info(f"Running SVI for {n_steps} steps ({num_particles} particles/step)...")
    history = trainer.train(n_steps=n_steps, verbose=verbose, early_stopping=early_stopping)

    posterior = trainer.posterior()
    metrics = trainer.evaluate_reconstruction()
    logger.info(f"Reconstruction metrics: {metrics}")

    return InversionResult(
        posterior=posterior,
        problem=problem,
        method="svi",
        converged=bool(trainer.converged),
        loss_history=history["loss"],
        diagnostics={"reconstruction": metrics, "init_values": init_values},
    )


def _run_nuts(problem, init_values, num_samples, num_warmup, verbose):
    init = {
        name: torch.tensor(value, dtype=torch.float64)
        for name, value in init_values.items()
    }
    kernel = NUTS(problem.model, init_strategy=init_to_value(values=init))
    mcmc = MCMC(
        kernel,
        num_samples=num_samples,
        warmup_steps=num_warmup,
        disable_progbar=not verbose,
    )

    logger.info(f"Running NUTS: {num_warmup} warmup + {num_samples} samples...")
    try:
        mcmc.run()
    except (ValueError, RuntimeError) as exc:
        raise InferenceFailure(f"NUTS failed: {exc}") from exc

    samples = mcmc.get_samples()
    if not samples or any(len(samples[name]) == 0 for name in problem.param_names):
        raise InferenceFailure("NUTS returned no samples")

    try:
        posterior = SamplePosterior(samples, prior_bounds=problem.prior_bounds)
    except ValueError as exc:
        raise InferenceFailure(f"NUTS draws are unusable: {exc}") from exc

    diagnostics = {"init_values": init_values}
    converged = True
    r_hat = {}
    for name, site in mcmc.diagnostics().items():
        if name in problem.param_names:
            r_hat[name] = float(site["r_hat"])
    diagnostics["r_hat"] = r_hat
    bad = {k: v for k, v in r_hat.items() if not v < 1.1}
    if bad:
        message = f"NUTS chains not mixed (r_hat >= 1.1): {bad}"
        logger.warning(message)
        warnings.warn(message, InferenceNonconvergence)
        converged = False

    return InversionResult(
        posterior=posterior,
        problem=problem,
        method="nuts",
        converged=converged,
        diagnostics=diagnostics,
    )


def fit_seabed_model(
    data: Union[MeasurementDataset, InversionProblem],
    method: str = "svi",
    n_steps: int = config.DEFAULT_N_STEPS,
    num_particles: int = config.DEFAULT_NUM_PARTICLES,
    learning_rate: float = config.DEFAULT_LEARNING_RATE,
    lr_decay: float = config.DEFAULT_LR_DECAY,
    init_scale: float = config.DEFAULT_INIT_SCALE,
    init_values: Optional[Dict[str, float]] = None,
    num_init_samples: int = config.DEFAULT_NUM_INIT_SAMPLES,
    num_samples: int = 500,
    num_warmup: int = 200,
    early_stopping: Optional[EarlyStopping] = None,
    seed: Optional[int] = None,
    verbose: bool = True,
    **kwargs,
) -> InversionResult:
    """
    Infer the seabed parameters (rho, c, delta) from transmission loss.

    Parameters
    ----------
    data : MeasurementDataset or InversionProblem
        Measurements to invert
    method : str
        'svi' (mean-field variational inference) or 'nuts' (MCMC)
    n_steps : int
        SVI steps
    num_particles : int
        Monte Carlo samples per SVI step
    learning_rate : float
        Initial SVI learning rate
    lr_decay : float
        Final learning rate as a fraction of the initial one
    init_scale : float
        Initial guide scale in unconstrained space
    init_values : Optional[Dict[str, float]]
        Starting point; screened from the prior when omitted
    num_init_samples : int
        Prior draws screened for the starting point
    num_samples, num_warmup : int
        NUTS sample and warmup counts
    early_stopping : Optional[EarlyStopping]
        Stop SVI once the loss plateaus (ignored by NUTS)
    seed : Optional[int]
        Seed for pyro/torch random number generators
    verbose : bool
        Show progress bars
    **kwargs
        Passed to InversionProblem when `data` is a dataset

    Returns
    -------
    result : InversionResult

    Raises
    ------
    InferenceFailure
        If the engine produced no usable posterior

    Examples
    --------
    >>> import inverse_seabed as isb
    >>> data = isb.validation.reference_dataset()
    >>> result = isb.fit_seabed_model(data, seed=0)
    >>> result.posterior.mean()
    """
    if method not in ("svi", "nuts"):
        raise ValueError(f"Unknown method: {method}")

    if isinstance(data, InversionProblem):
        if kwargs:
            raise TypeError(f"Unexpected arguments for a prebuilt problem: {sorted(kwargs)}")
        problem = data
    else:
        problem = InversionProblem.from_dataset(data, **kwargs)

    logger.info(f"Fitting seabed model to {problem.n_obs} measurements ({method})...")

    if seed is not None:
        pyro.set_rng_seed(seed)

    if init_values is None:
        init_values = find_initial_values(problem, num_samples=num_init_samples)

    if method == "svi":
        result = _run_svi(problem, init_values, n_steps, learning_rate, lr_decay,
                          num_particles, init_scale, early_stopping, verbose)
    else:
        result = _run_nuts(problem, init_values, num_samples, num_warmup, verbose)

    logger.info(f"Posterior mean: {result.estimate()}")
    return result


def quick_fit(
    data: Union[MeasurementDataset, InversionProblem],
    **kwargs,
) -> InversionResult:
    """
    Quick fit with sensible defaults for exploration.

    Parameters
    ----------
    data : MeasurementDataset or InversionProblem
        Data
    **kwargs
        Override defaults
    """
    defaults = {
        'n_steps': 300,
        'num_particles': 4,
        'learning_rate': 0.05,
        'num_init_samples': 200,
    }

    defaults.update(kwargs)

    return fit_seabed_model(data, **defaults)
