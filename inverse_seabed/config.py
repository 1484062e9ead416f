"""
Reference constants for the Pekeris waveguide inversion experiment.
"""

# --- Waveguide ---
WATER_DEPTH_M = 20.0          # Constant water-column depth
SOURCE_DEPTH_M = 5.0          # Omnidirectional source depth
SOUND_SPEED_MPS = 1500.0      # Isovelocity water sound speed
N_RAYS = 7                    # Image-source rays summed by the ray model

# --- Experiment ---
REFERENCE_RANGE_M = 100.0     # Known source-receiver separation
NOISE_STD_DB = 0.5            # Observation noise standard deviation

# --- Priors (closed intervals) ---
PRIOR_BOUNDS = {
    "rho": (1.0, 3.0),        # Seabed/water density ratio
    "c": (0.5, 2.5),          # Seabed/water sound-speed ratio
    "delta": (0.0, 0.003),    # Seabed attenuation (loss tangent)
}
PARAMETER_NAMES = ("rho", "c", "delta")

# --- Reference tutorial run ---
TRUE_PARAMETERS = {"rho": 1.5, "c": 1.2, "delta": 0.001}
REFERENCE_DEPTHS_M = tuple(10.0 + i for i in range(10))            # 10..19
REFERENCE_FREQUENCIES_HZ = tuple(5000.0 + 100.0 * i for i in range(21))  # 5000..7000

# --- Inference defaults ---
DEFAULT_N_STEPS = 1000
DEFAULT_NUM_PARTICLES = 10    # Monte Carlo samples per ELBO gradient step
DEFAULT_LEARNING_RATE = 0.05
DEFAULT_LR_DECAY = 0.05       # Final learning rate as a fraction of the initial one
DEFAULT_CLIP_NORM = 10.0
DEFAULT_INIT_SCALE = 0.1      # Initial guide scale in unconstrained space
DEFAULT_NUM_INIT_SAMPLES = 500
CONVERGENCE_WINDOW = 50       # Steps per window when comparing late ELBO averages
CONVERGENCE_RTOL = 0.05
