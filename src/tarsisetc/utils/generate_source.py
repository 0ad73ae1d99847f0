import numpy as np
from pathlib import Path

from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.utils.unit_conversions import surface_brightness_ab_to_radiance


def flat_ab_spectrum(mag=18., wl_min_nm=320, wl_max_nm=820, step_nm=10,
                     savepath: Path | None = None) -> Spectrum:
    """
    Generate a spectrum of constant AB surface brightness (mag/arcsec^2).

    The radiance is per unit wavelength, W/(m^2 sr m), sampled every
    step_nm from wl_min_nm up to (excluding) wl_max_nm.
    """
    wavelengths_m = np.arange(wl_min_nm, wl_max_nm, step_nm) * 1e-9
    radiance = surface_brightness_ab_to_radiance(mag, wavelengths_m)

    spectrum = Spectrum(wavelengths_m, radiance, x_units='m', y_units='W/(m^2 sr m)')

    if savepath is not None:
        spectrum.save(savepath)
        print(f'File saved as {savepath}')

    return spectrum
