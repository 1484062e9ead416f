"""
Underwater environment descriptions.

An environment is an immutable value built fresh for every forward model
call, so no state leaks between evaluations.
"""

from dataclasses import dataclass, field
import torch

from .. import config
from ..errors import InvalidParameter
from .reflection import (
    as_real,
    rayleigh_reflection_coefficient,
    pressure_release_reflection_coefficient,
)


@dataclass(frozen=True)
class PressureReleaseSurface:
    """Flat sea surface with reflection coefficient -1."""

    def reflection_coefficient(self, theta: torch.Tensor) -> torch.Tensor:
        return pressure_release_reflection_coefficient(theta)


@dataclass(frozen=True)
class RayleighSeabed:
    """
    Fluid half-space seabed.

    Parameters
    ----------
    rho : torch.Tensor
        Density ratio (seabed/water)
    c : torch.Tensor
        Sound-speed ratio (seabed/water)
    delta : torch.Tensor
        Dimensionless attenuation
    """

    rho: torch.Tensor
    c: torch.Tensor
    delta: torch.Tensor

    def reflection_coefficient(self, theta: torch.Tensor) -> torch.Tensor:
        return rayleigh_reflection_coefficient(self.rho, self.c, self.delta, theta)


@dataclass(frozen=True)
class Environment:
    """
    Range-independent isovelocity waveguide.

    Parameters
    ----------
    seabed : RayleighSeabed
        Bottom boundary
    water_depth : float
        Constant water depth (m)
    source_depth : float
        Source depth below the surface (m)
    sound_speed : float
        Water sound speed (m/s)
    surface : PressureReleaseSurface
        Top boundary
    """

    seabed: RayleighSeabed
    water_depth: float = config.WATER_DEPTH_M
    source_depth: float = config.SOURCE_DEPTH_M
    sound_speed: float = config.SOUND_SPEED_MPS
    surface: PressureReleaseSurface = field(default_factory=PressureReleaseSurface)


def _check_positive(name, value, allow_zero=False):
    value = torch.as_tensor(value)
    bad = value < 0 if allow_zero else value <= 0
    if torch.any(bad) or torch.any(torch.isnan(value)):
        bound = ">= 0" if allow_zero else "> 0"
        raise InvalidParameter(f"{name} must be {bound}, got {value.detach().tolist()}")


def make_environment(
    rho,
    c,
    delta,
    water_depth: float = config.WATER_DEPTH_M,
    source_depth: float = config.SOURCE_DEPTH_M,
    sound_speed: float = config.SOUND_SPEED_MPS,
) -> Environment:
    """
    Build a Pekeris environment for one set of seabed parameters.

    Raises
    ------
    InvalidParameter
        If rho <= 0, c <= 0, delta < 0, or the geometry is inconsistent.
    """
    _check_positive("rho", rho)
    _check_positive("c", c)
    _check_positive("delta", delta, allow_zero=True)
    _check_positive("water_depth", water_depth)
    _check_positive("sound_speed", sound_speed)

    if not 0.0 < source_depth < water_depth:
        raise InvalidParameter(
            f"source_depth must lie inside (0, {water_depth}), got {source_depth}"
        )

    seabed = RayleighSeabed(rho=as_real(rho), c=as_real(c), delta=as_real(delta))
    return Environment(
        seabed=seabed,
        water_depth=float(water_depth),
        source_depth=float(source_depth),
        sound_speed=float(sound_speed),
    )
