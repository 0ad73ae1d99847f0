import logging

import numpy as np

from tarsisetc.datatypes.curve import CurveAxis
from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.defines.exceptions import ConfigurationError, InvalidParameterError
from tarsisetc.defines.properties import DetectorProperties, DetectorSpec

logger = logging.getLogger(__name__)

# Dark current model: Qd = t * Qd0 * slope * T^3 * exp(-Tbeta / T)
DARK_CURRENT_DENSITY = 6.2415091e+13   # e / (s m^2), i.e. 1 nA / cm^2
DARK_CURRENT_TBETA = 6400.             # K
DARK_CURRENT_SLOPE = 122.


class Detector:
    """
    Turns a per-pixel photon flux into signal and noise, in counts.

    Buffers are recomputed from scratch by recalculate():

        photons   = flux * exposure * pixel_area          (ph/px)
        electrons = photons * QE + dark electrons         (e/px)
        signal    = electrons / gain                      (counts)
        noise     = sqrt(electrons + RON^2) / gain        (counts)
    """

    def __init__(self, properties: DetectorProperties):
        self._properties = properties
        self._spec: DetectorSpec | None = None
        self._detector_name: str | None = None
        self._exposure_time = 1.

        self._photon_flux_per_pixel = Spectrum()   # ph / (px m^2 s)
        self._photons_per_pixel = Spectrum()       # ph / px
        self._electrons_per_pixel = Spectrum()     # e / px
        self._signal = Spectrum()                  # counts
        self._noise = Spectrum()                   # counts

    @property
    def properties(self) -> DetectorProperties:
        return self._properties

    @property
    def spec(self) -> DetectorSpec | None:
        return self._spec

    @property
    def detector_name(self) -> str | None:
        return self._detector_name

    @property
    def exposure_time(self) -> float:
        return self._exposure_time

    def set_detector(self, name: str) -> bool:
        """Selects a detector by name. Returns False, with no detector selected, if unknown."""
        spec = self._properties.get(name)
        if spec is None:
            logger.debug("Detector %s not found", name)
            self._spec = None
            self._detector_name = None
            return False

        self._spec = spec
        self._detector_name = name
        return True

    def set_exposure_time(self, exposure_time: float):
        if exposure_time < 0:
            raise InvalidParameterError(f"Exposure time must be non-negative, got {exposure_time}")
        self._exposure_time = float(exposure_time)

    def set_pixel_photon_flux(self, flux: Spectrum):
        self._photon_flux_per_pixel.from_existing(flux)
        self.recalculate()

    def _require_spec(self) -> DetectorSpec:
        if self._spec is None:
            raise ConfigurationError("No detector selected")
        return self._spec

    def dark_electrons(self) -> float:
        """Thermal electrons per pixel accumulated during the exposure."""
        spec = self._require_spec()

        if spec.dark_current is not None:
            return spec.dark_current * self._exposure_time

        T = spec.temperature
        qd0 = DARK_CURRENT_DENSITY * spec.pixel_area
        return float(self._exposure_time * qd0 * DARK_CURRENT_SLOPE * T**3
                     * np.exp(-DARK_CURRENT_TBETA / T))

    def recalculate(self):
        spec = self._require_spec()
        inv_gain = 1. / spec.gain
        ron_squared = spec.read_out_noise * spec.read_out_noise

        self._photons_per_pixel.from_existing(
            self._photon_flux_per_pixel,
            self._exposure_time * spec.pixel_area)
        self._photons_per_pixel.set_units(CurveAxis.Y, 'ph')

        self._electrons_per_pixel.from_existing(self._photons_per_pixel, spec.qe)
        self._electrons_per_pixel.add(self.dark_electrons())
        self._electrons_per_pixel.set_units(CurveAxis.Y, 'e')

        self._signal.from_existing(self._electrons_per_pixel, inv_gain)
        self._signal.set_units(CurveAxis.Y, 'counts')

        self._noise.from_existing(self._electrons_per_pixel)
        self._noise.apply(lambda electrons: inv_gain * np.sqrt(np.maximum(electrons, 0.) + ron_squared))
        self._noise.set_units(CurveAxis.Y, 'counts')

    def signal(self, px):
        return self._signal(px)

    def noise(self, px):
        return self._noise(px)

    def electrons(self, px):
        return self._electrons_per_pixel(px)

    def snr(self, px):
        with np.errstate(divide='ignore', invalid='ignore'):
            return np.divide(self._signal(px), self._noise(px))

    def signal_curve(self) -> Spectrum:
        return self._signal

    def noise_curve(self) -> Spectrum:
        return self._noise

    def electrons_curve(self) -> Spectrum:
        return self._electrons_per_pixel

    def read_out_noise(self) -> float:
        """Read-out noise of the selected detector, in electrons."""
        return self._require_spec().read_out_noise

    def gain(self) -> float:
        """Gain of the selected detector, in electrons per count."""
        return self._require_spec().gain
