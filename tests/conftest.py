import matplotlib

matplotlib.use("Agg")

import pytest
import pyro


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: end-to-end inversions (deselect with -m 'not slow')")


@pytest.fixture(autouse=True)
def clean_param_store():
    pyro.clear_param_store()
    yield
    pyro.clear_param_store()


@pytest.fixture
def small_dataset():
    from inverse_seabed.validation import generate_synthetic_data

    return generate_synthetic_data(
        depths=[10.0, 13.0, 16.0, 19.0],
        frequencies=[5000.0, 6000.0, 7000.0],
    )


@pytest.fixture
def small_problem(small_dataset):
    from inverse_seabed.inference import InversionProblem

    return InversionProblem.from_dataset(small_dataset)
