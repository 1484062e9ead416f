"""
Basic usage example of InverseSeabed.

Evaluates the forward model and inverts a small synthetic dataset.
"""

import logging

import inverse_seabed as isb

logging.basicConfig(level=logging.INFO)

# 1. Forward model at a single receiver
tl = isb.transmission_loss(100.0, 10.0, 5000.0, rho=1.5, c=1.2, delta=0.001)
print(f"Transmission loss: {tl:.2f} dB")

# 2. Synthetic measurements with a little noise
data = isb.validation.generate_synthetic_data(
    depths=[10.0, 12.0, 14.0, 16.0, 18.0],
    frequencies=[5000.0, 5500.0, 6000.0, 6500.0, 7000.0],
    noise_std=0.5,
    seed=1,
)
print(data.to_dataframe().head())

# 3. Quick inversion
result = isb.inference.quick_fit(data, seed=1)
print(result.posterior.summary())

print("\nDone!")
