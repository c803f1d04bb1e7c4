from ._gaussians import DiagonalGaussian, Gaussian
from ._noise_model_base import NoiseModelBase

__all__ = [
    "DiagonalGaussian",
    "Gaussian",
    "NoiseModelBase",
]
