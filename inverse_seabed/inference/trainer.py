"""
Training loop for seabed inversion.

Optimizes the ELBO: L = E_q[log p(X, theta)] - E_q[log q(theta)]
"""

import logging
import math
import warnings
from typing import Dict, List, Optional

import numpy as np
import torch
import pyro.optim as optim
from pyro.infer import SVI, Trace_ELBO
from tqdm import tqdm

from .. import config
from ..errors import InferenceFailure, InferenceNonconvergence
from .guide import MeanFieldGuide
from .model import InversionProblem
from .posterior import GaussianPosterior

logger = logging.getLogger(__name__)


class InversionTrainer:
    """
    Stochastic variational inference for an InversionProblem.

    Handles:
    - ELBO optimization with clipped Adam and learning-rate decay
    - Recovery of the last good state when a step fails
    - Convergence monitoring

    Parameters
    ----------
    problem : InversionProblem
        Generative model
    guide : MeanFieldGuide
        Variational guide
    learning_rate : float
        Initial learning rate
    lrd : float
        Per-step multiplicative learning-rate decay
    clip_norm : float
        Gradient norm clipping threshold
    num_particles : int
        Monte Carlo samples per ELBO estimate
    """

    def __init__(
        self,
        problem: InversionProblem,
        guide: MeanFieldGuide,
        learning_rate: float = config.DEFAULT_LEARNING_RATE,
        lrd: float = 1.0,
        clip_norm: float = config.DEFAULT_CLIP_NORM,
        num_particles: int = config.DEFAULT_NUM_PARTICLES,
    ):
        if num_particles < 1:
            raise ValueError(f"num_particles must be >= 1, got {num_particles}")

        self.problem = problem
        self.guide = guide
        self.learning_rate = learning_rate

        # Optimizer
        self.optimizer = optim.ClippedAdam({
            "lr": learning_rate,
            "lrd": lrd,
            "clip_norm": clip_norm,
        })

        # SVI
        self.svi = SVI(
            model=self.problem.model,
            guide=self.guide.guide,
            optim=self.optimizer,
            loss=Trace_ELBO(num_particles=num_particles),
        )

        # Training history
        self.loss_history = []
        self.converged = None

    def _snapshot(self) -> Dict[str, torch.Tensor]:
        return {k: v.detach().clone() for k, v in self.guide.state_dict().items()}

    def _guide_is_finite(self) -> bool:
        return all(torch.all(torch.isfinite(p)) for p in self.guide.parameters())

    def _abort(self, step: int, reason: str, snapshot, cause=None):
        if not self.loss_history:
            raise InferenceFailure(
                f"SVI produced no usable result: {reason}"
            ) from cause

        with torch.no_grad():
            self.guide.load_state_dict(snapshot)
        message = (
            f"SVI stopped at step {step}: {reason}; "
            f"returning the state after step {len(self.loss_history)}"
        )
        logger.warning(message)
        warnings.warn(message, InferenceNonconvergence)
        self.converged = False

    def train(
        self,
        n_steps: int = config.DEFAULT_N_STEPS,
        verbose: bool = True,
        early_stopping: Optional["EarlyStopping"] = None,
    ) -> Dict[str, List[float]]:
        """
        Train the guide via ELBO maximization.

        Parameters
        ----------
        n_steps : int
            Number of SVI steps
        verbose : bool
            Whether to show progress bar
        early_stopping : Optional[EarlyStopping]
            Stop once the loss plateaus; the run then counts as converged

        Returns
        -------
        history : Dict[str, List[float]]
            Training history

        Raises
        ------
        InferenceFailure
            If the very first step already fails
        """
        if n_steps < 1:
            raise ValueError(f"n_steps must be >= 1, got {n_steps}")

        iterator = range(n_steps)
        if verbose:
            iterator = tqdm(iterator, desc="SVI")

        self.converged = None
        for step in iterator:
            snapshot = self._snapshot()
            try:
                loss = self.svi.step()
            except (ValueError, RuntimeError) as exc:
                self._abort(step, f"{type(exc).__name__}: {exc}", snapshot, cause=exc)
                break

            if not math.isfinite(loss) or not self._guide_is_finite():
                self._abort(step, f"non-finite loss or parameters (loss={loss})", snapshot)
                break

            self.loss_history.append(loss)

            if verbose and step % 10 == 0:
                iterator.set_postfix({"ELBO": -loss})

            if early_stopping is not None and early_stopping(loss):
                # a plateau is convergence; the window check needs a full run
                logger.info(f"Early stopping at step {step}: loss has plateaued")
                self.converged = True
                break

        if self.converged is None:
            self.converged = self.check_convergence()

        return {"loss": self.loss_history}

    def check_convergence(
        self,
        window: int = config.CONVERGENCE_WINDOW,
        rtol: float = config.CONVERGENCE_RTOL,
    ) -> bool:
        """
        Compare the mean loss of the last two windows.

        Warns with InferenceNonconvergence when the loss is still moving.
        """
        if len(self.loss_history) < 2 * window:
            message = (
                f"Only {len(self.loss_history)} SVI steps recorded; "
                f"cannot assess convergence (need {2 * window})"
            )
            logger.warning(message)
            warnings.warn(message, InferenceNonconvergence)
            return False

        previous = np.mean(self.loss_history[-2 * window:-window])
        last = np.mean(self.loss_history[-window:])
        change = abs(last - previous) / max(abs(previous), 1.0)
        if change > rtol:
            message = (
                f"ELBO still changing by {change:.1%} over the last {window} steps"
            )
            logger.warning(message)
            warnings.warn(message, InferenceNonconvergence)
            return False

        logger.info(f"SVI converged: final loss {last:.3f}")
        return True

    def posterior(self) -> GaussianPosterior:
        return self.guide.posterior()

    def evaluate_reconstruction(self) -> Dict[str, float]:
        """
        Evaluate how well the posterior mean reproduces the observations.

        Returns
        -------
        metrics : Dict[str, float]
            Residual statistics (see `posterior_predictive_check`)
        """
        from ..tools.densities import posterior_predictive_check

        return posterior_predictive_check(self.problem, self.posterior())

    def save_checkpoint(
        self,
        path: str,
    ):
        """
        Save guide, optimizer state and loss history.

        Parameters
        ----------
        path : str
            Path to save checkpoint
        """
        checkpoint = {
            'guide_state_dict': self.guide.state_dict(),
            'optimizer_state_dict': self.optimizer.get_state(),
            'loss_history': self.loss_history,
        }
        torch.save(checkpoint, path)

    def load_checkpoint(
        self,
        path: str,
    ):
        """
        Load a checkpoint written by `save_checkpoint`.

        Parameters
        ----------
        path : str
            Path to checkpoint
        """
        checkpoint = torch.load(path, weights_only=False)
        with torch.no_grad():
            self.guide.load_state_dict(checkpoint['guide_state_dict'])
        self.optimizer.set_state(checkpoint['optimizer_state_dict'])
        self.loss_history = checkpoint['loss_history']


class EarlyStopping:
    """
    Stop training once the windowed loss stops improving.

    Parameters
    ----------
    patience : int
        Number of steps to wait without improvement
    min_delta : float
        Minimum change to qualify as improvement
    window : int
        Number of recent losses averaged before comparing
    """

    def __init__(
        self,
        patience: int = 100,
        min_delta: float = 1e-3,
        window: int = 20,
    ):
        self.patience = patience
        self.min_delta = min_delta
        self.window = window
        self.best_loss = float('inf')
        self.counter = 0
        self.should_stop = False
        self._recent = []

    def __call__(
        self,
        loss: float,
    ) -> bool:
        """
        Check if training should stop.

        Parameters
        ----------
        loss : float
            Current loss

        Returns
        -------
        should_stop : bool
            Whether to stop training
        """
        self._recent.append(loss)
        if len(self._recent) > self.window:
            self._recent.pop(0)
        smoothed = sum(self._recent) / len(self._recent)

        if smoothed < self.best_loss - self.min_delta:
            self.best_loss = smoothed
            self.counter = 0
        else:
            self.counter += 1

        if self.counter >= self.patience:
            self.should_stop = True

        return self.should_stop
