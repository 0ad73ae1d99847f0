import logging
from dataclasses import dataclass

import numpy as np

from tarsisetc.datatypes.curve import Curve, CurveAxis
from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.datatypes.tables import read_curve_table
from tarsisetc.defines.exceptions import ConfigurationError
from tarsisetc.defines.instrument import InstrumentArm, SPECTRAL_PIXEL_LENGTH, TARSIS_SLICES
from tarsisetc.defines.properties import InstrumentProperties
from tarsisetc.utils.data_files import DataFileManager
from tarsisetc.utils.unit_conversions import NANOMETER, PLANCK_CONSTANT, SPEED_OF_LIGHT, STD2FWHM

logger = logging.getLogger(__name__)

TRANSMISSION_FILES = {
    InstrumentArm.BLUE: 'blueTransmission.csv',
    InstrumentArm.RED: 'redTransmission.csv',
}

# Row of each coating in the transmission tables
COATING_ROWS = {
    InstrumentArm.BLUE: {'ML15': 1, 'NBB': 2},
    InstrumentArm.RED: {'ML15': 1},
}

DISPERSION_FILES = {
    InstrumentArm.BLUE: 'dispersionBlue.csv',
    InstrumentArm.RED: 'dispersionRed.csv',
}

RESOLUTION_FILES = {
    InstrumentArm.BLUE: 'pxResolutionBlue.csv',
    InstrumentArm.RED: 'pxResolutionRed.csv',
}


@dataclass
class SliceCalibration:
    """
    Wavelength calibration of one slice of one arm.

    dispersion:  wavelength (m) -> px / m
    resolution:  wavelength (m) -> 1 / sigma of the line spread function (1/px)
    w2px:        wavelength (m) -> pixel, integral of dispersion
    px2w:        pixel -> wavelength (m), NaN outside the calibrated range
    """
    dispersion: Curve
    resolution: Curve
    w2px: Curve
    px2w: Curve


def convolve_around(curve: Curve, x0, inv_sigma, oversample: int = 11):
    """
    Gaussian-weighted average of curve around x0.

    The kernel is sampled on oversample points spaced STD2FWHM / oversample
    standard deviations apart and normalized by the sum of its weights. x0
    and inv_sigma may be arrays of the same shape, which lets every pixel
    use its own width.
    """
    x0 = np.asarray(x0, dtype=float)
    inv_sigma = np.asarray(inv_sigma, dtype=float)

    half_width = oversample // 2
    steps = np.arange(-half_width, half_width + 1)

    dx = STD2FWHM / (inv_sigma * oversample)
    offsets = dx[..., np.newaxis] * steps
    half_prec = .5 * inv_sigma * inv_sigma
    weights = np.exp(-half_prec[..., np.newaxis] * offsets * offsets)

    samples = curve(x0[..., np.newaxis] + offsets)
    return np.sum(samples * weights, axis=-1) / np.sum(weights, axis=-1)


class InstrumentModel:
    """
    Model of the TARSIS spectrograph. Unless specified, all units are SI.

    The per-slice calibration curves of both arms are built once, at
    construction, and are read-only afterwards. Only the attenuated input
    spectrum and the arm it belongs to change between calls.
    """

    def __init__(self, properties: InstrumentProperties, data_files: DataFileManager,
                 reader=read_curve_table):
        self._properties = properties
        self._data_files = data_files
        self._reader = reader

        self._transmission: dict[tuple[InstrumentArm, str], Curve] = {}
        self._calibration: dict[InstrumentArm, list[SliceCalibration]] = {}

        self._atten_spectrum: Spectrum | None = None
        self._current_arm = InstrumentArm.BLUE

        for arm in InstrumentArm:
            for coating, row in COATING_ROWS[arm].items():
                transmission = self._load_curve(TRANSMISSION_FILES[arm], row)
                transmission.scale_axis(CurveAxis.X, NANOMETER)
                self._transmission[(arm, coating)] = transmission

            self._calibration[arm] = [self._load_slice(arm, i) for i in range(TARSIS_SLICES)]
            logger.debug("Loaded %d slice calibrations for the %s arm", TARSIS_SLICES, arm.value)

    def _load_curve(self, filename: str, row: int) -> Curve:
        curve = Curve()
        curve.load(self._data_files.data_file(filename), transpose=True, x_col=0, y_col=row,
                   reader=self._reader)
        return curve

    def _load_slice(self, arm: InstrumentArm, slice_idx: int) -> SliceCalibration:
        # nm -> nm/px, turned into m -> px/m
        dispersion = self._load_curve(DISPERSION_FILES[arm], slice_idx + 1)
        dispersion.extend_right()
        dispersion.extend_left()
        dispersion.scale_axis(CurveAxis.X, NANOMETER)
        dispersion.scale_axis(CurveAxis.Y, NANOMETER)
        dispersion.invert_axis(CurveAxis.Y)
        dispersion.set_units(CurveAxis.X, 'm')
        dispersion.set_units(CurveAxis.Y, 'px/m')

        # nm -> FWHM in px, turned into m -> 1/sigma
        resolution = self._load_curve(RESOLUTION_FILES[arm], slice_idx + 1)
        resolution.extend_right()
        resolution.extend_left()
        resolution.scale_axis(CurveAxis.X, NANOMETER)
        resolution.invert_axis(CurveAxis.Y, STD2FWHM)
        resolution.set_units(CurveAxis.X, 'm')
        resolution.set_units(CurveAxis.Y, '1/px')

        w2px = Curve()
        w2px.assign(dispersion)
        w2px.integrate()
        w2px.set_units(CurveAxis.Y, 'px')

        px2w = Curve()
        px2w.assign(w2px)
        px2w.flip()
        px2w.set_oob(np.nan, np.nan)

        return SliceCalibration(dispersion, resolution, w2px, px2w)

    @property
    def properties(self) -> InstrumentProperties:
        return self._properties

    @property
    def current_arm(self) -> InstrumentArm:
        return self._current_arm

    @property
    def attenuated_spectrum(self) -> Spectrum | None:
        return self._atten_spectrum

    def slice_calibration(self, arm: InstrumentArm, slice_idx: int) -> SliceCalibration:
        if arm not in self._calibration:
            raise ConfigurationError(f"Invalid arm configuration: {arm!r}")

        if not 0 <= slice_idx < TARSIS_SLICES:
            raise ConfigurationError(f"Slice {slice_idx + 1} out of bounds")

        return self._calibration[arm][slice_idx]

    def transmission(self, arm: InstrumentArm, coating: str) -> Curve:
        try:
            return self._transmission[(arm, coating)]
        except KeyError:
            arm_name = arm.value if isinstance(arm, InstrumentArm) else repr(arm)
            raise ConfigurationError(f"Unknown coating for {arm_name} arm: `{coating}'") from None

    def px_to_wavelength(self, arm: InstrumentArm, slice_idx: int, pixel):
        return self.slice_calibration(arm, slice_idx).px2w(pixel)

    def px_to_wavelength_curve(self, slice_idx: int) -> Curve:
        return self.slice_calibration(self._current_arm, slice_idx).px2w

    def wavelength_to_px(self, arm: InstrumentArm, slice_idx: int, wavelength):
        return self.slice_calibration(arm, slice_idx).w2px(wavelength)

    def wavelength_to_px_curve(self, slice_idx: int) -> Curve:
        return self.slice_calibration(self._current_arm, slice_idx).w2px

    def set_input(self, arm: InstrumentArm, spectrum: Spectrum):
        """
        Sets the input spectrum, in radiance units with a wavelength axis,
        i.e. W / (m^2 sr m).

        The radiance is turned into irradiance by the f/# light cone,
        attenuated by the aperture efficiency and by the transmission of
        the arm for the configured coating.
        """
        if arm not in self._calibration:
            raise ConfigurationError(f"Invalid arm configuration: {arm!r}")

        transmission = self.transmission(arm, self._properties.coating)
        total_scale = self._properties.light_cone_solid_angle * self._properties.ap_efficiency

        atten = Spectrum()
        atten.from_existing(spectrum)
        atten.scale_axis(CurveAxis.Y, total_scale)
        atten.multiply_by(transmission)
        atten.set_units(CurveAxis.Y, 'W/(m^2 m)')

        self._current_arm = arm
        self._atten_spectrum = atten

    def release_input(self):
        """Drops the attenuated spectrum. The current arm is kept."""
        self._atten_spectrum = None

    def make_pixel_photon_flux(self, slice_idx: int) -> Spectrum:
        """
        Returns a new per-pixel photon flux spectrum, in ph / (s m^2), for
        the given slice of the current arm.

        The attenuated spectrum is dispersed onto the pixel axis, averaged
        with a Gaussian whose width follows the resolution element at each
        pixel, and converted from power to photons (E = hc / lambda).
        Pixels without a calibrated wavelength are left out.
        """
        if self._atten_spectrum is None:
            raise ConfigurationError("No input spectrum set: call set_input() first")

        cal = self.slice_calibration(self._current_arm, slice_idx)

        dispersed = Spectrum()
        dispersed.from_existing(self._atten_spectrum)
        dispersed.scale_axis(CurveAxis.X, cal.w2px, cal.dispersion)

        pixels = np.arange(SPECTRAL_PIXEL_LENGTH, dtype=float)
        wavelengths = cal.px2w(pixels)
        defined = ~np.isnan(wavelengths)
        pixels, wavelengths = pixels[defined], wavelengths[defined]

        to_photons = wavelengths / (PLANCK_CONSTANT * SPEED_OF_LIGHT)
        flux = convolve_around(dispersed, pixels, cal.resolution(wavelengths)) * to_photons

        pixel_flux = Spectrum(pixels, flux, x_units='px', y_units='ph/(s m^2)')
        return pixel_flux
