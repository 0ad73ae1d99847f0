import logging
import warnings

import numpy as np
import xarray as xr

from tarsisetc.datatypes.curve import Curve, CurveAxis
from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.datatypes.tables import read_curve_table
from tarsisetc.defines.exceptions import ConfigurationError
from tarsisetc.defines.instrument import InstrumentArm, SPECTRAL_PIXEL_LENGTH
from tarsisetc.defines.properties import Configuration
from tarsisetc.defines.simulationparams import SimulationParams
from tarsisetc.modeling.detector import Detector
from tarsisetc.modeling.instrument_model import InstrumentModel
from tarsisetc.modeling.sky_model import SkyModel, validate_airmass, validate_moon
from tarsisetc.utils.data_files import DataFileManager
from tarsisetc.utils.unit_conversions import (
    ANGSTROM,
    SPEED_OF_LIGHT,
    surface_brightness_ab_to_freq_radiance,
)

logger = logging.getLogger(__name__)

# http://svo2.cab.inta-csic.es/theory/fps/index.php?id=Generic/Cousins.R
COUSINS_R_FILE = 'Generic_Cousins.R.dat'


class Simulation:
    """
    Simulates one exposure of the spectrograph.

    Usage follows a fixed order: set_input(), normalize_to_r_mag(),
    set_params(), then simulate_arm() for each arm of interest, after which
    the per-pixel accessors describe the last simulated arm.
    """

    def __init__(self, config: Configuration, data_files: DataFileManager | None = None,
                 reader=read_curve_table):
        self._config = config
        data_files = data_files if data_files is not None else DataFileManager()

        self._sky_model = SkyModel(config.sky, data_files, reader=reader)
        self._detector = Detector(config.detectors)
        self._instrument = InstrumentModel(config.instrument, data_files, reader=reader)

        self._input = Spectrum()
        self._sky: Spectrum | None = None
        self._params = SimulationParams()
        self._simulated_arm: InstrumentArm | None = None

        # Filter transmission, with a frequency axis (Hz)
        self._cousins_r = Curve()
        self._cousins_r.load(data_files.data_file(COUSINS_R_FILE), reader=reader)
        self._cousins_r.scale_axis(CurveAxis.X, ANGSTROM)
        self._cousins_r.invert_axis(CurveAxis.X, SPEED_OF_LIGHT)
        self._cousins_r_equiv_bw = self._cousins_r.integral()

    @property
    def params(self) -> SimulationParams:
        return self._params

    @property
    def input_spectrum(self) -> Spectrum:
        return self._input

    @property
    def sky_spectrum(self) -> Spectrum | None:
        return self._sky

    @property
    def sky_model(self) -> SkyModel:
        return self._sky_model

    @property
    def instrument(self) -> InstrumentModel:
        return self._instrument

    @property
    def detector(self) -> Detector:
        return self._detector

    @property
    def simulated_arm(self) -> InstrumentArm | None:
        return self._simulated_arm

    def set_input(self, spectrum: Spectrum):
        """Sets the object radiance, in W / (m^2 sr m) with a wavelength axis in m."""
        self._input = Spectrum()
        self._input.from_existing(spectrum)

    def mean_filtered_radiance(self) -> float:
        """
        Mean frequency radiance of the input, in W / (m^2 sr Hz), through
        the Cousins R band.
        """
        filtered = Spectrum()
        filtered.from_existing(self._input)

        # W / (m^2 sr m) -> W / (m^2 sr Hz)
        filtered.invert_axis(CurveAxis.X, SPEED_OF_LIGHT)
        filtered.multiply_by(self._cousins_r)

        return filtered.integral() / self._cousins_r_equiv_bw

    def normalize_to_r_mag(self, r_mag: float):
        """
        Rescales the input so that its mean surface brightness through the
        R filter is r_mag (AB mag / arcsec^2).

        A flat spectrum of 0 mag AB / arcsec^2 fed through the filter must
        give back 0 mag AB / arcsec^2, hence the division by the equivalent
        bandwidth of the filter.
        """
        desired = surface_brightness_ab_to_freq_radiance(r_mag)
        mean = self.mean_filtered_radiance()

        if not np.isfinite(mean) or mean <= 0:
            warnings.warn(f'Input spectrum has no usable flux in the R band (mean radiance {mean}), '
                          'normalization skipped')
            return

        self._input.scale_axis(CurveAxis.Y, desired / mean)
        logger.debug("Input normalized to R = %g (scale %g)", r_mag, desired / mean)

    def set_params(self, params: SimulationParams):
        """
        Applies observing conditions and exposure settings, and recomputes
        the sky spectrum from the current input.
        """
        # Validate everything before touching any state
        validate_airmass(params.airmass)
        validate_moon(params.moon)
        self._detector.set_exposure_time(params.exposure)

        self._sky_model.set_airmass(params.airmass)
        self._sky_model.set_moon(params.moon)

        self._sky = self._sky_model.make_sky_spectrum(self._input)
        self._params = params
        self._simulated_arm = None

    def simulate_arm(self, arm: InstrumentArm):
        """
        Runs the instrument and detector models for one arm, on the slice
        given by the current parameters.
        """
        if self._sky is None:
            raise ConfigurationError("No sky spectrum: call set_params() first")

        det_name = self._params.detector_for(arm)
        if not self._detector.set_detector(det_name):
            raise ConfigurationError(f"Detector `{det_name}' not found")

        properties = self._instrument.properties
        properties.coating = self._detector.spec.coating
        properties.detector = det_name

        self._simulated_arm = None
        try:
            self._instrument.set_input(arm, self._sky)
            flux = self._instrument.make_pixel_photon_flux(self._params.slice)
            self._detector.set_pixel_photon_flux(flux)
        finally:
            # The attenuated spectrum is only needed while dispersing
            self._instrument.release_input()

        self._simulated_arm = arm
        logger.debug("Simulated %s arm, slice %d, detector %s",
                     arm.value, self._params.slice, det_name)

    def signal(self, px):
        return self._detector.signal(px)

    def noise(self, px):
        return self._detector.noise(px)

    def electrons(self, px):
        return self._detector.electrons(px)

    def snr(self, px):
        return self._detector.snr(px)

    def read_out_noise(self) -> float:
        return self._detector.read_out_noise()

    def gain(self) -> float:
        return self._detector.gain()

    def px_to_wavelength(self, px):
        return self.px_to_wavelength_curve()(px)

    def px_to_wavelength_curve(self) -> Curve:
        return self._instrument.px_to_wavelength_curve(self._params.slice)

    def wavelength_to_px_curve(self) -> Curve:
        return self._instrument.wavelength_to_px_curve(self._params.slice)

    def to_dataset(self) -> xr.Dataset:
        """
        Per-pixel results of the last simulated arm, with the wavelength of
        each pixel as a coordinate.
        """
        if self._simulated_arm is None:
            raise ConfigurationError("Nothing simulated yet: call simulate_arm() first")

        pixels = np.arange(SPECTRAL_PIXEL_LENGTH)
        dataset = xr.Dataset(
            data_vars={
                'signal': ('pixel', self.signal(pixels), {'units': 'counts'}),
                'noise': ('pixel', self.noise(pixels), {'units': 'counts'}),
                'electrons': ('pixel', self.electrons(pixels), {'units': 'e'}),
            },
            coords={
                'pixel': pixels,
                'wavelength': ('pixel', self.px_to_wavelength(pixels), {'units': 'm'}),
            },
            attrs={
                'arm': self._simulated_arm.value,
                'slice': self._params.slice,
                'detector': self._detector.detector_name,
                'exposure': self._params.exposure,
                'airmass': self._params.airmass,
                'moon': self._params.moon,
                'read_out_noise': self.read_out_noise(),
                'gain': self.gain(),
            }
        )
        return dataset
