"""
Image-source ray model for the Pekeris waveguide.

Sums a bounded number of eigenrays between a pressure-release surface and
a fluid seabed in isovelocity water. Every image carries its own surface
and bottom bounce counts; reflection coefficients are evaluated at the
image's incidence angle, so the coherent field is smooth in the seabed
parameters and can be differentiated by torch.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

import torch

from .. import config
from ..errors import InvalidParameter
from .environment import Environment
from .reflection import as_real, thorp_absorption


@dataclass(frozen=True)
class Arrival:
    """
    A single eigenray.

    Tensor fields broadcast over the receiver inputs.
    """

    ray: int
    surface_bounces: int
    bottom_bounces: int
    path_length: torch.Tensor
    travel_time: torch.Tensor
    incidence_angle: torch.Tensor
    amplitude: torch.Tensor


class PekerisRayModel:
    """
    Range-independent ray model with a fixed number of image sources.

    Images are enumerated in groups of four per order n = 0, 1, ...:

    ====  ====================  ========  =======
    k     vertical separation   surface   bottom
    ====  ====================  ========  =======
    0     2nH + zr - zs         n         n
    1     2nH + zr + zs         n + 1     n
    2     2(n+1)H - zr - zs     n         n + 1
    3     2(n+1)H - zr + zs     n + 1     n + 1
    ====  ====================  ========  =======

    Parameters
    ----------
    n_rays : int
        Number of images to sum
    absorption : bool
        Whether to apply Thorp seawater absorption along each path
    """

    def __init__(
        self,
        n_rays: int = config.N_RAYS,
        absorption: bool = True,
    ):
        if n_rays < 1:
            raise ValueError(f"n_rays must be >= 1, got {n_rays}")
        self.n_rays = n_rays
        self.absorption = absorption

    def __repr__(self):
        return f"PekerisRayModel(n_rays={self.n_rays}, absorption={self.absorption})"

    @staticmethod
    def image(
        ray: int,
        water_depth: float,
        source_depth: float,
        receiver_depth: torch.Tensor,
    ) -> Tuple[torch.Tensor, int, int]:
        """
        Vertical separation and bounce counts of image number `ray`.

        Returns
        -------
        z : torch.Tensor
            Vertical distance between the image and the receiver
        surface_bounces : int
        bottom_bounces : int
        """
        n, k = divmod(ray, 4)
        h, zs, zr = water_depth, source_depth, receiver_depth
        if k == 0:
            return torch.abs(2 * n * h + zr - zs), n, n
        if k == 1:
            return 2 * n * h + zr + zs, n + 1, n
        if k == 2:
            return 2 * (n + 1) * h - zr - zs, n, n + 1
        return 2 * (n + 1) * h - zr + zs, n + 1, n + 1

    def _check_geometry(self, env: Environment, range_m, depth, frequency):
        if torch.any(range_m <= 0):
            raise InvalidParameter("range must be > 0")
        if torch.any(frequency <= 0):
            raise InvalidParameter("frequency must be > 0")
        # the field vanishes on a pressure-release surface
        if torch.any(depth <= 0) or torch.any(depth > env.water_depth):
            raise InvalidParameter(
                f"receiver depth must lie in (0, {env.water_depth}], "
                f"got {depth.detach().tolist()}"
            )

    def arrivals(
        self,
        env: Environment,
        range_m,
        depth,
        frequency,
    ) -> List[Arrival]:
        """
        Compute all eigenrays from the source to the receiver(s).

        Parameters
        ----------
        env : Environment
            Waveguide description
        range_m : float or torch.Tensor
            Horizontal range (m)
        depth : float or torch.Tensor
            Receiver depth (m)
        frequency : float or torch.Tensor
            Frequency (Hz)

        Returns
        -------
        arrivals : List[Arrival]
            One entry per image, in enumeration order
        """
        range_m = as_real(range_m)
        depth = as_real(depth)
        frequency = as_real(frequency)
        self._check_geometry(env, range_m, depth, frequency)

        wavenumber = 2 * math.pi * frequency / env.sound_speed
        alpha = thorp_absorption(frequency) if self.absorption else None

        result = []
        for ray in range(self.n_rays):
            z, s, b = self.image(ray, env.water_depth, env.source_depth, depth)
            length = torch.sqrt(range_m ** 2 + z ** 2)
            theta = torch.atan2(range_m, z)

            magnitude = 1.0 / length
            if alpha is not None:
                magnitude = magnitude * 10.0 ** (-alpha * length / 20.0)
            magnitude, phase = torch.broadcast_tensors(magnitude, wavenumber * length)
            amplitude = torch.polar(magnitude, phase)

            for _ in range(s):
                amplitude = amplitude * env.surface.reflection_coefficient(theta)
            for _ in range(b):
                amplitude = amplitude * env.seabed.reflection_coefficient(theta)

            result.append(Arrival(
                ray=ray,
                surface_bounces=s,
                bottom_bounces=b,
                path_length=length,
                travel_time=length / env.sound_speed,
                incidence_angle=theta,
                amplitude=amplitude,
            ))

        return result

    def pressure(
        self,
        env: Environment,
        range_m,
        depth,
        frequency,
    ) -> torch.Tensor:
        """Coherent complex pressure relative to 1 m from the source."""
        arrivals = self.arrivals(env, range_m, depth, frequency)
        return torch.stack(
            torch.broadcast_tensors(*[a.amplitude for a in arrivals])
        ).sum(dim=0)

    def transmission_loss(
        self,
        env: Environment,
        range_m,
        depth,
        frequency,
    ) -> torch.Tensor:
        """
        Coherent transmission loss in dB (positive = loss).

        Broadcasts over tensor-valued range, depth and frequency.
        """
        p = self.pressure(env, range_m, depth, frequency)
        return -20.0 * torch.log10(torch.abs(p))
