"""
Tests for posterior density tools.
"""

import numpy as np
import pytest
from scipy.integrate import trapezoid

from inverse_seabed import config
from inverse_seabed.inference import MeanFieldGuide
from inverse_seabed.tools import (
    conditional_density,
    plot_conditional_densities,
    posterior_predictive_check,
)

TRUTH = config.TRUE_PARAMETERS


@pytest.fixture
def posterior():
    return MeanFieldGuide(init_values=TRUTH, init_scale=0.05).posterior()


def test_conditional_density_shape(posterior):
    grid = np.linspace(1.4, 1.6, 41)
    density = conditional_density(posterior, "rho", grid=grid)

    assert density.shape == (41,)
    assert np.all(density >= 0)
    assert np.argmax(density) == pytest.approx(20, abs=2)


def test_conditional_density_normalized(posterior):
    grid = np.linspace(0.0005, 0.0015, 201)
    density = conditional_density(posterior, "delta", grid=grid, normalize=True)
    assert trapezoid(density, grid) == pytest.approx(1.0)


def test_conditional_density_outside_prior_is_zero(posterior):
    density = conditional_density(posterior, "c", grid=[0.4, 1.2, 2.6])
    assert density[0] == 0.0
    assert density[1] > 0
    assert density[2] == 0.0


def test_conditional_density_unknown_parameter(posterior):
    with pytest.raises(ValueError):
        conditional_density(posterior, "porosity")


def test_plot_conditional_densities(posterior):
    import matplotlib.pyplot as plt

    fig = plot_conditional_densities(posterior, truth=TRUTH, n_points=50)
    assert len(fig.axes) == 3
    plt.close(fig)


def test_posterior_predictive_check_at_truth(small_problem):
    posterior = MeanFieldGuide(init_values=TRUTH, init_scale=1e-4).posterior()
    metrics = posterior_predictive_check(small_problem, posterior)

    assert set(metrics) == {'rmse', 'mae', 'max_abs', 'reduced_chi2'}
    assert metrics['rmse'] < 0.05
