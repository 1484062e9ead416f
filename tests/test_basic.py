"""
Basic tests for InverseSeabed package.
"""

import math

import pytest
import numpy as np
import torch


def test_imports():
    """Test that all modules can be imported."""
    import inverse_seabed
    import inverse_seabed.propagation
    import inverse_seabed.inference
    import inverse_seabed.validation
    import inverse_seabed.tools as tl


def test_synthetic_data_generation():
    """Test synthetic data generation."""
    from inverse_seabed.validation import generate_synthetic_data

    data = generate_synthetic_data(
        depths=[10.0, 11.0, 12.0],
        frequencies=[5000.0, 5100.0],
    )

    assert len(data) == 6
    df = data.to_dataframe()
    assert list(df.columns) == ['depth', 'frequency', 'transmission_loss']
    assert np.all(np.isfinite(df['transmission_loss']))


def test_forward_model():
    """Test forward model."""
    from inverse_seabed import transmission_loss

    tl = transmission_loss(100.0, 10.0, 5000.0, 1.5, 1.2, 0.001)

    assert isinstance(tl, float)
    # spherical spreading alone gives 40 dB at 100 m
    assert 20.0 < tl < 70.0


def test_inversion_problem():
    """Test inversion problem creation."""
    from inverse_seabed.inference import InversionProblem

    problem = InversionProblem(
        depths=[10.0, 12.0],
        frequencies=[5000.0, 5000.0],
        observations=[40.0, 41.0],
    )

    assert problem.n_obs == 2
    assert problem.range_m == 100.0
    assert math.isfinite(problem.log_density(1.5, 1.2, 0.001))


def test_mean_field_guide():
    """Test inference guide."""
    from inverse_seabed.inference import MeanFieldGuide

    guide = MeanFieldGuide(init_values={"rho": 1.5, "c": 1.2, "delta": 0.001})

    assert guide.loc.shape == (3,)
    np.testing.assert_allclose(guide.posterior().median(), [1.5, 1.2, 0.001], rtol=1e-9)


def test_quick_fit_synthetic(small_dataset):
    """Test fitting on synthetic data."""
    from inverse_seabed.errors import InferenceNonconvergence
    from inverse_seabed.inference import quick_fit

    # Minimal steps for speed; too short to assess convergence
    with pytest.warns(InferenceNonconvergence):
        result = quick_fit(
            small_dataset,
            n_steps=20,
            num_particles=1,
            num_init_samples=20,
            seed=0,
            verbose=False,
        )

    assert result.method == "svi"
    assert len(result.loss_history) == 20
    assert not result.converged

    mean = result.posterior.mean()
    assert mean.shape == (3,)
    assert 1.0 <= mean[0] <= 3.0
    assert 0.5 <= mean[1] <= 2.5
    assert 0.0 <= mean[2] <= 0.003
    assert 'reconstruction' in result.diagnostics


def test_benchmark():
    """Test benchmarking functions."""
    from inverse_seabed.inference import GaussianPosterior, MeanFieldGuide
    from inverse_seabed.validation import parameter_recovery, recovered_within

    truth = {"rho": 1.5, "c": 1.2, "delta": 0.001}
    guide = MeanFieldGuide(init_values=truth, init_scale=1e-3)
    posterior = guide.posterior()

    results = parameter_recovery(posterior, truth)
    assert list(results.index) == ['rho', 'c', 'delta']
    assert 'z_score' in results.columns
    assert recovered_within(posterior, truth)

    far = MeanFieldGuide(init_values={"rho": 2.5, "c": 1.2, "delta": 0.001}, init_scale=1e-3)
    assert not recovered_within(far.posterior(), truth)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
