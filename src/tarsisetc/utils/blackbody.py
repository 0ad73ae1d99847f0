import numpy as np
from scipy.constants import h, c, k

from tarsisetc.datatypes.spectrum import Spectrum


def planck_law(wl_min_nm=320, wl_max_nm=820, nbins=500, temperature_k=5000):
    """
    Calculates the spectral radiance of a blackbody using Planck's Law.

    Args:
        wl_min_nm (float, optional): The minimum wavelength in nanometers.
        wl_max_nm (float, optional): The maximum wavelength in nanometers.
        nbins (int, optional): The number of wavelength samples.
        temperature_k (float, optional): The temperature of the blackbody in Kelvin.

    Returns:
        tuple[np.ndarray, np.ndarray]: Wavelengths in meters and spectral
                                       radiance in W/(m^2 sr m).
    """
    wavelengths_m = np.linspace(wl_min_nm, wl_max_nm, nbins) * 1e-9

    # A value of ~709 is where np.exp overflows to infinity for float64.
    exponent = (h * c) / (wavelengths_m * k * temperature_k)
    radiance = np.zeros_like(wavelengths_m)
    mask = exponent < 709

    numerator = 2.0 * h * c**2
    denominator = (wavelengths_m[mask]**5) * (np.exp(exponent[mask]) - 1.0)
    radiance[mask] = numerator / denominator

    return wavelengths_m, radiance


def blackbody_spectrum(temperature_k=5000, wl_min_nm=320, wl_max_nm=820, nbins=500) -> Spectrum:
    """Blackbody radiance as an input Spectrum (wavelength axis in m)."""
    wavelengths_m, radiance = planck_law(wl_min_nm, wl_max_nm, nbins, temperature_k)
    return Spectrum(wavelengths_m, radiance, x_units='m', y_units='W/(m^2 sr m)')
