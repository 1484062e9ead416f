"""
Forward model: seabed parameters -> transmission loss.

Implements Y(r, d, f, rho, c, delta) by building a Pekeris environment
from the seabed parameters and handing it to the ray model.
"""

import logging
from typing import Optional

import torch

from .. import config
from ..errors import InvalidParameter, SolverFailure
from .environment import make_environment
from .pekeris import PekerisRayModel
from .reflection import as_real

logger = logging.getLogger(__name__)


class ForwardModel:
    """
    Transmission-loss forward model for the Pekeris waveguide.

    Holds only fixed configuration; every call builds a fresh environment,
    so the model can be shared between inference contexts.

    Parameters
    ----------
    solver : Optional[PekerisRayModel]
        Propagation solver (default: 7-ray Pekeris model)
    water_depth : float
        Water depth (m)
    source_depth : float
        Source depth (m)
    sound_speed : float
        Water sound speed (m/s)
    """

    def __init__(
        self,
        solver: Optional[PekerisRayModel] = None,
        water_depth: float = config.WATER_DEPTH_M,
        source_depth: float = config.SOURCE_DEPTH_M,
        sound_speed: float = config.SOUND_SPEED_MPS,
    ):
        self.solver = solver if solver is not None else PekerisRayModel()
        self.water_depth = water_depth
        self.source_depth = source_depth
        self.sound_speed = sound_speed

    def __repr__(self):
        return (
            f"ForwardModel(solver={self.solver!r}, water_depth={self.water_depth}, "
            f"source_depth={self.source_depth}, sound_speed={self.sound_speed})"
        )

    def check_geometry(self, range_m, depth, frequency):
        """
        Validate receiver geometry against this waveguide.

        Raises
        ------
        InvalidParameter
            If range or frequency is not positive, or a depth lies
            outside (0, water_depth]
        """
        range_m = as_real(range_m)
        depth = as_real(depth)
        frequency = as_real(frequency)
        if torch.any(range_m <= 0):
            raise InvalidParameter(f"range must be > 0, got {range_m.detach().tolist()}")
        if torch.any(frequency <= 0):
            raise InvalidParameter(f"frequency must be > 0, got {frequency.detach().tolist()}")
        # the field vanishes on a pressure-release surface
        if torch.any(depth <= 0) or torch.any(depth > self.water_depth):
            raise InvalidParameter(
                f"receiver depth must lie in (0, {self.water_depth}], "
                f"got {depth.detach().tolist()}"
            )

    def __call__(
        self,
        range_m,
        depth,
        frequency,
        rho,
        c,
        delta,
    ) -> torch.Tensor:
        """
        Predict transmission loss (dB), broadcasting over tensor inputs.

        Differentiable with respect to rho, c and delta.

        Raises
        ------
        InvalidParameter
            For out-of-domain seabed or geometry parameters
        SolverFailure
            If the solver raises or returns a non-finite loss
        """
        env = make_environment(
            rho,
            c,
            delta,
            water_depth=self.water_depth,
            source_depth=self.source_depth,
            sound_speed=self.sound_speed,
        )
        self.check_geometry(range_m, depth, frequency)

        try:
            loss = self.solver.transmission_loss(env, range_m, depth, frequency)
        except InvalidParameter:
            raise
        except Exception as exc:
            raise SolverFailure(f"{self.solver!r} failed: {exc}") from exc

        if not torch.all(torch.isfinite(loss)):
            raise SolverFailure(
                f"{self.solver!r} returned a non-finite transmission loss"
            )

        return loss


_default_model = ForwardModel()


def predict_transmission_loss(
    range_m,
    depths,
    frequencies,
    rho,
    c,
    delta,
    forward_model: Optional[ForwardModel] = None,
) -> torch.Tensor:
    """
    Batched, differentiable transmission loss for many receivers.

    Parameters
    ----------
    range_m : float
        Source-receiver range (m)
    depths : array-like
        Receiver depths (m)
    frequencies : array-like
        Frequencies (Hz), same length as `depths`
    rho, c, delta : float or torch.Tensor
        Seabed parameters

    Returns
    -------
    loss : torch.Tensor
        Transmission loss (dB), float64
    """
    model = forward_model if forward_model is not None else _default_model
    return model(range_m, depths, frequencies, rho, c, delta)


def transmission_loss(
    range_m: float,
    depth: float,
    frequency: float,
    rho: float,
    c: float,
    delta: float,
    forward_model: Optional[ForwardModel] = None,
) -> float:
    """
    Transmission loss (dB) at a single receiver.

    Examples
    --------
    >>> tl = transmission_loss(100.0, 10.0, 5000.0, 1.5, 1.2, 0.001)
    """
    with torch.no_grad():
        loss = predict_transmission_loss(
            range_m, depth, frequency, rho, c, delta, forward_model=forward_model
        )
    return float(loss)
