"""
Validation framework: Synthetic data generation and benchmarking.
"""

from .synthetic import (
    MeasurementDataset,
    MeasurementRecord,
    SyntheticDatasetGenerator,
    generate_synthetic_data,
    reference_dataset,
)
from .benchmark import parameter_recovery, recovered_within

__all__ = [
    "MeasurementDataset",
    "MeasurementRecord",
    "SyntheticDatasetGenerator",
    "generate_synthetic_data",
    "reference_dataset",
    "parameter_recovery",
    "recovered_within",
]
