"""
Synthetic transmission-loss data for validation.

Ground truth is known, so we can measure how well the inversion
recovers it.
"""

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional, Sequence
import logging

import numpy as np
import pandas as pd
import torch

from .. import config
from ..errors import EmptyDataset, ShapeMismatch
from ..propagation.operator import ForwardModel, transmission_loss

logger = logging.getLogger(__name__)


class MeasurementRecord(NamedTuple):
    depth: float
    frequency: float
    transmission_loss: float


@dataclass(frozen=True, eq=False)
class MeasurementDataset:
    """
    Table of transmission-loss measurements.

    The three arrays line up positionally: record i was measured at
    depth `depths[i]` and frequency `frequencies[i]`.

    Parameters
    ----------
    depths : np.ndarray
        Receiver depths (m)
    frequencies : np.ndarray
        Frequencies (Hz)
    transmission_loss : np.ndarray
        Measured transmission loss (dB)
    range_m : float
        Source-receiver range the data were taken at
    """

    depths: np.ndarray
    frequencies: np.ndarray
    transmission_loss: np.ndarray
    range_m: float = config.REFERENCE_RANGE_M

    def __post_init__(self):
        arrays = {}
        for name in ("depths", "frequencies", "transmission_loss"):
            values = np.array(getattr(self, name), dtype=np.float64).ravel()
            values.setflags(write=False)
            arrays[name] = values
            object.__setattr__(self, name, values)

        lengths = {name: len(values) for name, values in arrays.items()}
        if len(set(lengths.values())) != 1:
            raise ShapeMismatch(f"Measurement arrays differ in length: {lengths}")
        if lengths["depths"] == 0:
            raise EmptyDataset("Measurement dataset has no records")

    def __len__(self) -> int:
        return len(self.depths)

    def __iter__(self) -> Iterator[MeasurementRecord]:
        return self.records()

    def records(self) -> Iterator[MeasurementRecord]:
        for d, f, x in zip(self.depths, self.frequencies, self.transmission_loss):
            yield MeasurementRecord(float(d), float(f), float(x))

    def as_tensors(self):
        """Return (depths, frequencies, transmission_loss) as float64 tensors."""
        return (
            torch.tensor(self.depths, dtype=torch.float64),
            torch.tensor(self.frequencies, dtype=torch.float64),
            torch.tensor(self.transmission_loss, dtype=torch.float64),
        )

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            "depth": self.depths,
            "frequency": self.frequencies,
            "transmission_loss": self.transmission_loss,
        })

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        range_m: float = config.REFERENCE_RANGE_M,
    ) -> "MeasurementDataset":
        return cls(
            depths=df["depth"].to_numpy(),
            frequencies=df["frequency"].to_numpy(),
            transmission_loss=df["transmission_loss"].to_numpy(),
            range_m=range_m,
        )


class SyntheticDatasetGenerator:
    """
    Generate transmission-loss measurements with known seabed parameters.

    Records follow the Cartesian product of the grids with depth as the
    outer loop and frequency as the inner loop.

    Parameters
    ----------
    rho : float
        True density ratio
    c : float
        True sound-speed ratio
    delta : float
        True attenuation
    range_m : float
        Source-receiver range (m)
    depths : Sequence[float]
        Receiver depth grid (m)
    frequencies : Sequence[float]
        Frequency grid (Hz)
    noise_std : float
        Standard deviation of additive Gaussian noise (dB). 0 keeps the
        exact model output.
    forward_model : Optional[ForwardModel]
        Forward model to evaluate (default: 7-ray Pekeris model)
    """

    def __init__(
        self,
        rho: float = config.TRUE_PARAMETERS["rho"],
        c: float = config.TRUE_PARAMETERS["c"],
        delta: float = config.TRUE_PARAMETERS["delta"],
        range_m: float = config.REFERENCE_RANGE_M,
        depths: Sequence[float] = config.REFERENCE_DEPTHS_M,
        frequencies: Sequence[float] = config.REFERENCE_FREQUENCIES_HZ,
        noise_std: float = 0.0,
        forward_model: Optional[ForwardModel] = None,
    ):
        if noise_std < 0:
            raise ValueError(f"noise_std must be >= 0, got {noise_std}")
        self.rho = rho
        self.c = c
        self.delta = delta
        self.range_m = range_m
        self.depths = [float(d) for d in depths]
        self.frequencies = [float(f) for f in frequencies]
        self.noise_std = noise_std
        self.forward_model = forward_model

    @property
    def truth(self):
        return {"rho": self.rho, "c": self.c, "delta": self.delta}

    def generate(
        self,
        seed: Optional[int] = None,
    ) -> MeasurementDataset:
        """
        Evaluate the forward model on every (depth, frequency) grid point.

        Returns
        -------
        dataset : MeasurementDataset
            |depths| * |frequencies| records

        Examples
        --------
        >>> gen = SyntheticDatasetGenerator(depths=[10.0, 12.0], frequencies=[5000.0])
        >>> data = gen.generate()
        >>> len(data)
        2
        """
        if not self.depths or not self.frequencies:
            raise EmptyDataset("Depth and frequency grids must be non-empty")

        logger.info(
            f"Generating {len(self.depths)} x {len(self.frequencies)} synthetic "
            f"measurements at range {self.range_m} m"
        )

        depths, frequencies, losses = [], [], []
        for d in self.depths:
            for f in self.frequencies:
                depths.append(d)
                frequencies.append(f)
                losses.append(transmission_loss(
                    self.range_m, d, f, self.rho, self.c, self.delta,
                    forward_model=self.forward_model,
                ))

        losses = np.asarray(losses, dtype=np.float64)
        if self.noise_std > 0:
            rng = np.random.default_rng(seed)
            losses = losses + rng.normal(0.0, self.noise_std, size=losses.shape)

        dataset = MeasurementDataset(
            depths=np.asarray(depths),
            frequencies=np.asarray(frequencies),
            transmission_loss=losses,
            range_m=self.range_m,
        )

        logger.info(
            f"Transmission loss range: {losses.min():.2f} .. {losses.max():.2f} dB"
        )

        return dataset


def generate_synthetic_data(
    rho: float = config.TRUE_PARAMETERS["rho"],
    c: float = config.TRUE_PARAMETERS["c"],
    delta: float = config.TRUE_PARAMETERS["delta"],
    seed: Optional[int] = None,
    **kwargs,
) -> MeasurementDataset:
    """
    Convenience function to generate synthetic data.

    Parameters
    ----------
    rho, c, delta : float
        True seabed parameters
    seed : Optional[int]
        Seed for the noise generator (only used when noise_std > 0)
    **kwargs
        Additional arguments for SyntheticDatasetGenerator

    Examples
    --------
    >>> data = generate_synthetic_data(rho=1.5, c=1.2, delta=0.001)
    >>> result = fit_seabed_model(data)
    >>> print(result.posterior.mean())
    """
    generator = SyntheticDatasetGenerator(rho=rho, c=c, delta=delta, **kwargs)
    return generator.generate(seed=seed)


def reference_dataset() -> MeasurementDataset:
    """
    The reference experiment: rho=1.5, c=1.2, delta=0.001 at 100 m,
    depths 10..19 m and frequencies 5000..7000 Hz.
    """
    return generate_synthetic_data()
