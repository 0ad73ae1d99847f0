import logging

import numpy as np

from tarsisetc.datatypes.curve import Curve, CurveAxis
from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.datatypes.tables import read_curve_table
from tarsisetc.defines.exceptions import InvalidParameterError
from tarsisetc.defines.properties import SkyProperties
from tarsisetc.utils.data_files import DataFileManager
from tarsisetc.utils.unit_conversions import (
    ANGSTROM,
    CAHA_SKY_UNITS,
    mag2frac,
    surface_brightness_ab_to_radiance,
)

logger = logging.getLogger(__name__)


def validate_airmass(airmass: float) -> float:
    if not airmass >= 1:
        raise InvalidParameterError(f"Airmass out of bounds: {airmass} (must be >= 1)")
    return float(airmass)


def validate_moon(moon: float) -> float:
    if not 0 <= moon <= 100:
        raise InvalidParameterError(f"Moon percent out of bounds: {moon} (must be in [0, 100])")
    return float(moon)


class SkyModel:
    """
    Composes the radiance reaching the telescope from an object spectrum,
    the night sky emission, the moon and the atmospheric extinction:

        I(l) = 10^(-0.4 ext(l) X) * (object(l) + moon(l) + sky(l) X / X_ref)

    All spectra are radiances in W / (m^2 sr m) with a wavelength axis in m.
    """

    def __init__(self, properties: SkyProperties, data_files: DataFileManager,
                 reader=read_curve_table):
        self._properties = properties
        self._airmass = 1.
        self._moon_fraction = 0.

        # http://www.caha.es/sanchez/sky/
        # Angstrom -> 1e-16 erg / (s cm^2 A) per 2.7 arcsec diameter fibre
        self._sky_spectrum = Spectrum()
        self._sky_spectrum.load(data_files.data_file(properties.sky_emission),
                                x_col=1, y_col=2, reader=reader)
        self._sky_spectrum.scale_axis(CurveAxis.Y, CAHA_SKY_UNITS)
        self._sky_spectrum.scale_axis(CurveAxis.X, ANGSTROM)
        self._sky_spectrum.set_units(CurveAxis.X, 'm')
        self._sky_spectrum.set_units(CurveAxis.Y, 'W/(m^2 sr m)')

        # Angstrom -> mag / airmass
        self._sky_ext = Curve()
        self._sky_ext.load(data_files.data_file(properties.sky_extinction), reader=reader)
        self._sky_ext.scale_axis(CurveAxis.X, ANGSTROM)

        # Moon illumination (%) -> mag / arcsec^2 (AB)
        self._moon_to_mag = Curve()
        self._moon_to_mag.load(data_files.data_file(properties.moon_brightness), reader=reader)

    @property
    def properties(self) -> SkyProperties:
        return self._properties

    @property
    def airmass(self) -> float:
        return self._airmass

    @property
    def moon(self) -> float:
        return self._moon_fraction

    @property
    def sky_background(self) -> Spectrum:
        return self._sky_spectrum

    def set_moon(self, moon: float):
        self._moon_fraction = validate_moon(moon)

    def set_airmass(self, airmass: float):
        self._airmass = validate_airmass(airmass)

    def set_zenith_distance(self, z: float):
        """Sets the airmass from the zenith distance, in degrees (plane-parallel atmosphere)."""
        if not 0 <= z < 90:
            raise InvalidParameterError(f"Zenith distance out of bounds: {z} (must be in [0, 90))")
        self.set_airmass(1. / np.cos(np.deg2rad(z)))

    def moon_magnitude(self) -> float:
        return self._moon_to_mag(self._moon_fraction)

    def make_sky_spectrum(self, object_spectrum: Spectrum) -> Spectrum:
        """Returns a new radiance spectrum as seen from the ground."""
        spectrum = Spectrum()
        spectrum.from_existing(self._sky_spectrum)
        spectrum.scale_axis(CurveAxis.Y, self._airmass / self._properties.sky_emission_ref_airmass)
        spectrum.add(object_spectrum)

        wavelengths = spectrum.x_points()
        ext_frac = mag2frac(self._sky_ext(wavelengths) * self._airmass)
        moon = surface_brightness_ab_to_radiance(self.moon_magnitude(), wavelengths)

        spectrum.set_many(wavelengths, ext_frac * (spectrum(wavelengths) + moon))
        logger.debug("Sky spectrum for airmass %g, moon %g%% (%d points)",
                     self._airmass, self._moon_fraction, len(spectrum))
        return spectrum
