"""
Benchmarking recovered seabed parameters against ground truth.
"""

import logging
from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..inference.posterior import Posterior

logger = logging.getLogger(__name__)

# Recovery tolerances of the reference experiment
DEFAULT_TOLERANCES = {"rho": 0.01, "c": 0.01, "delta": 0.0005}


def parameter_recovery(
    posterior: Posterior,
    truth: Dict[str, float],
) -> pd.DataFrame:
    """
    Compare the posterior mean with the true parameters.

    Parameters
    ----------
    posterior : Posterior
        Fitted posterior
    truth : Dict[str, float]
        True value per parameter

    Returns
    -------
    results : pd.DataFrame
        One row per parameter: truth, estimate, std, error,
        relative_error and z_score (error in posterior standard deviations)

    Examples
    --------
    >>> data = isb.validation.reference_dataset()
    >>> result = isb.fit_seabed_model(data)
    >>> print(parameter_recovery(result.posterior, {"rho": 1.5, "c": 1.2, "delta": 0.001}))
    """
    mean = posterior.mean()
    std = posterior.std()

    rows = []
    for i, name in enumerate(posterior.param_names):
        if name not in truth:
            continue
        error = mean[i] - truth[name]
        rows.append({
            'parameter': name,
            'truth': truth[name],
            'estimate': mean[i],
            'std': std[i],
            'error': error,
            'relative_error': abs(error) / abs(truth[name]) if truth[name] != 0 else np.nan,
            'z_score': error / std[i] if std[i] > 0 else np.nan,
        })

    results = pd.DataFrame(rows).set_index('parameter')
    logger.info(f"Parameter recovery:\n{results}")
    return results


def recovered_within(
    posterior: Posterior,
    truth: Dict[str, float],
    tolerances: Optional[Dict[str, float]] = None,
) -> bool:
    """
    Whether every posterior mean lies within its absolute tolerance.
    """
    tolerances = DEFAULT_TOLERANCES if tolerances is None else tolerances
    table = parameter_recovery(posterior, truth)
    return all(
        abs(table.loc[name, 'error']) < tol
        for name, tol in tolerances.items()
        if name in table.index
    )
