"""
Boundary reflection and volume absorption models.

All functions operate on float64 / complex128 torch tensors and are
differentiable with respect to the seabed parameters.
"""

import torch


def as_real(x) -> torch.Tensor:
    """Convert a float or tensor to a float64 tensor (keeps autograd history)."""
    return torch.as_tensor(x, dtype=torch.float64)


def rayleigh_reflection_coefficient(
    rho,
    c,
    delta,
    theta,
) -> torch.Tensor:
    """
    Plane-wave reflection coefficient of a fluid half-space.

    Based on Brekhovskikh & Lysanov. The seabed has a complex refractive
    index n = (1 + i*delta) / c relative to the water.

    Parameters
    ----------
    rho : float or torch.Tensor
        Seabed/water density ratio
    c : float or torch.Tensor
        Seabed/water sound-speed ratio
    delta : float or torch.Tensor
        Dimensionless attenuation
    theta : torch.Tensor
        Incidence angle measured from the vertical (radians)

    Returns
    -------
    coef : torch.Tensor
        Complex reflection coefficient
    """
    rho = as_real(rho)
    c = as_real(c)
    delta = as_real(delta)
    theta = as_real(theta)

    n = torch.complex(torch.ones_like(delta), delta) / c
    t1 = rho * torch.cos(theta)
    t2 = n * n - torch.sin(theta) ** 2
    t3 = torch.sqrt(t2)
    return (t1 - t3) / (t1 + t3)


def pressure_release_reflection_coefficient(theta) -> torch.Tensor:
    """Ideal sea surface: total reflection with phase inversion."""
    theta = as_real(theta)
    return torch.complex(-torch.ones_like(theta), torch.zeros_like(theta))


def thorp_absorption(frequency) -> torch.Tensor:
    """
    Seawater absorption from Thorp's formula.

    Parameters
    ----------
    frequency : float or torch.Tensor
        Frequency in Hz

    Returns
    -------
    alpha : torch.Tensor
        Absorption in dB/m
    """
    f2 = (as_real(frequency) / 1000.0) ** 2
    db_per_km = (
        0.11 * f2 / (1.0 + f2)
        + 44.0 * f2 / (4100.0 + f2)
        + 2.75e-4 * f2
        + 0.003
    )
    return db_per_km / 1000.0
