"""
Tests for the propagation model.
"""

import math

import pytest
import numpy as np
import torch

from inverse_seabed.errors import InvalidParameter, SolverFailure
from inverse_seabed.propagation import (
    ForwardModel,
    PekerisRayModel,
    make_environment,
    predict_transmission_loss,
    rayleigh_reflection_coefficient,
    thorp_absorption,
    transmission_loss,
)

THETA = dict(rho=1.5, c=1.2, delta=0.001)


def test_forward_model_is_deterministic():
    a = transmission_loss(100.0, 12.0, 5500.0, **THETA)
    b = transmission_loss(100.0, 12.0, 5500.0, **THETA)
    assert a == b


def test_forward_model_is_continuous():
    base = transmission_loss(100.0, 12.0, 5500.0, **THETA)
    for name, h in [("rho", 1e-6), ("c", 1e-6), ("delta", 1e-8)]:
        perturbed = dict(THETA)
        perturbed[name] += h
        assert abs(transmission_loss(100.0, 12.0, 5500.0, **perturbed) - base) < 1e-3


def test_gradient_matches_finite_difference():
    rho = torch.tensor(1.5, dtype=torch.float64, requires_grad=True)
    loss = predict_transmission_loss(100.0, 12.0, 5500.0, rho, 1.2, 0.001)
    loss.backward()

    h = 1e-5
    fd = (
        transmission_loss(100.0, 12.0, 5500.0, 1.5 + h, 1.2, 0.001)
        - transmission_loss(100.0, 12.0, 5500.0, 1.5 - h, 1.2, 0.001)
    ) / (2 * h)

    assert math.isfinite(rho.grad.item())
    assert rho.grad.item() == pytest.approx(fd, rel=1e-4, abs=1e-6)


def test_batched_prediction_matches_scalar():
    depths = [10.0, 15.0, 19.0]
    freqs = [5000.0, 6000.0, 7000.0]
    batched = predict_transmission_loss(100.0, depths, freqs, **THETA)

    assert batched.dtype == torch.float64
    assert batched.shape == (3,)
    for i, (d, f) in enumerate(zip(depths, freqs)):
        assert batched[i].item() == pytest.approx(transmission_loss(100.0, d, f, **THETA), abs=1e-9)


def test_rayleigh_normal_incidence():
    # R(0) = (rho*c - 1) / (rho*c + 1) for a lossless seabed
    coef = rayleigh_reflection_coefficient(1.5, 1.2, 0.0, torch.tensor(0.0))
    assert coef.real.item() == pytest.approx((1.8 - 1.0) / (1.8 + 1.0))
    assert coef.imag.item() == pytest.approx(0.0, abs=1e-12)


def test_rayleigh_matched_seabed_is_transparent():
    theta = torch.linspace(0.0, 1.5, 7, dtype=torch.float64)
    coef = rayleigh_reflection_coefficient(1.0, 1.0, 0.0, theta)
    assert torch.allclose(coef.abs(), torch.zeros_like(theta), atol=1e-12)


def test_rayleigh_total_reflection_beyond_critical_angle():
    # critical angle for c = 1.2 is asin(1/1.2) ~ 56.4 degrees
    theta = torch.tensor(math.radians(70.0), dtype=torch.float64)
    lossless = rayleigh_reflection_coefficient(1.5, 1.2, 0.0, theta)
    lossy = rayleigh_reflection_coefficient(1.5, 1.2, 0.002, theta)

    assert lossless.abs().item() == pytest.approx(1.0, abs=1e-12)
    assert lossy.abs().item() < 1.0


def test_thorp_absorption_increases_with_frequency():
    alpha = thorp_absorption(torch.tensor([1000.0, 5000.0, 10000.0]))
    assert torch.all(alpha > 0)
    assert torch.all(alpha[1:] > alpha[:-1])
    # roughly 0.07 dB/km at 1 kHz
    assert alpha[0].item() == pytest.approx(6.9e-5, rel=0.1)


def test_arrivals_geometry():
    env = make_environment(**THETA)
    solver = PekerisRayModel()
    arrivals = solver.arrivals(env, 100.0, 10.0, 5000.0)

    assert len(arrivals) == 7
    bounces = [(a.surface_bounces, a.bottom_bounces) for a in arrivals]
    assert bounces == [(0, 0), (1, 0), (0, 1), (1, 1), (1, 1), (2, 1), (1, 2)]

    direct = arrivals[0]
    assert direct.path_length.item() == pytest.approx(math.hypot(100.0, 5.0))
    assert direct.travel_time.item() == pytest.approx(direct.path_length.item() / 1500.0)

    lengths = [a.path_length.item() for a in arrivals]
    assert lengths[0] == min(lengths)


def test_single_ray_is_spherical_spreading():
    env = make_environment(**THETA)
    solver = PekerisRayModel(n_rays=1, absorption=False)
    tl = solver.transmission_loss(env, 100.0, 5.0, 5000.0)
    assert tl.item() == pytest.approx(40.0)


def test_environment_is_immutable():
    env = make_environment(**THETA)
    with pytest.raises(AttributeError):
        env.water_depth = 30.0


@pytest.mark.parametrize("bad", [
    dict(rho=0.0, c=1.2, delta=0.001),
    dict(rho=-1.0, c=1.2, delta=0.001),
    dict(rho=1.5, c=0.0, delta=0.001),
    dict(rho=1.5, c=1.2, delta=-1e-4),
])
def test_invalid_seabed_parameters(bad):
    with pytest.raises(InvalidParameter):
        transmission_loss(100.0, 10.0, 5000.0, **bad)


@pytest.mark.parametrize("range_m, depth, freq", [
    (0.0, 10.0, 5000.0),
    (100.0, -1.0, 5000.0),
    (100.0, 20.5, 5000.0),
    (100.0, 10.0, 0.0),
])
def test_invalid_geometry(range_m, depth, freq):
    with pytest.raises(InvalidParameter):
        transmission_loss(range_m, depth, freq, **THETA)


def test_zero_attenuation_is_valid():
    assert math.isfinite(transmission_loss(100.0, 10.0, 5000.0, 1.5, 1.2, 0.0))


def test_depth_at_surface_is_rejected():
    # pressure vanishes on the pressure-release surface
    with pytest.raises(InvalidParameter):
        transmission_loss(100.0, 0.0, 5000.0, **THETA)


def test_depth_at_seabed_is_accepted():
    tl = transmission_loss(100.0, 20.0, 5000.0, **THETA)
    assert math.isfinite(tl)


def test_solver_exception_becomes_solver_failure():
    class BrokenSolver(PekerisRayModel):
        def transmission_loss(self, env, range_m, depth, frequency):
            raise RuntimeError("ray tracing diverged")

    with pytest.raises(SolverFailure) as excinfo:
        transmission_loss(100.0, 10.0, 5000.0, forward_model=ForwardModel(solver=BrokenSolver()), **THETA)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


class ConstantSolver:
    """Solver without any geometry checks of its own."""

    def transmission_loss(self, env, range_m, depth, frequency):
        return torch.tensor(50.0, dtype=torch.float64)


@pytest.mark.parametrize("range_m, depth, freq", [
    (100.0, -3.0, 5000.0),
    (100.0, 0.0, 5000.0),
    (100.0, 25.0, 5000.0),
    (-1.0, 10.0, 5000.0),
    (100.0, 10.0, -5.0),
])
def test_forward_model_validates_geometry_for_any_solver(range_m, depth, freq):
    model = ForwardModel(solver=ConstantSolver())
    with pytest.raises(InvalidParameter):
        transmission_loss(range_m, depth, freq, forward_model=model, **THETA)


def test_forward_model_geometry_uses_its_water_depth():
    model = ForwardModel(solver=ConstantSolver(), water_depth=30.0)
    assert transmission_loss(100.0, 25.0, 5000.0, forward_model=model, **THETA) == 50.0
    with pytest.raises(InvalidParameter):
        transmission_loss(100.0, 30.5, 5000.0, forward_model=model, **THETA)


def test_forward_model_validates_batched_depths():
    model = ForwardModel(solver=ConstantSolver())
    with pytest.raises(InvalidParameter):
        predict_transmission_loss(100.0, [10.0, 21.0], [5000.0, 5000.0],
                                  forward_model=model, **THETA)


def test_non_finite_loss_becomes_solver_failure():
    class NanSolver(PekerisRayModel):
        def transmission_loss(self, env, range_m, depth, frequency):
            return torch.tensor(float("nan"), dtype=torch.float64)

    with pytest.raises(SolverFailure):
        transmission_loss(100.0, 10.0, 5000.0, forward_model=ForwardModel(solver=NanSolver()), **THETA)


def test_n_rays_must_be_positive():
    with pytest.raises(ValueError):
        PekerisRayModel(n_rays=0)
