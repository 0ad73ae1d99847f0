import logging
from dataclasses import dataclass, field, fields

import numpy as np

from tarsisetc.defines.instrument import (
    CAHA_APERTURE_AREA,
    CAHA_APERTURE_DIAMETER,
    CAHA_EFFECTIVE_AREA,
    CAHA_FOCAL_LENGTH,
    DETECTOR_TEMPERATURE,
)

logger = logging.getLogger(__name__)


def _from_mapping(cls, name: str, values: dict):
    """Builds a dataclass from a mapping, keeping defaults for missing keys."""
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        logger.warning("%s: ignoring unknown keys %s", name, sorted(unknown))
    return cls(**{key: value for key, value in values.items() if key in known})


@dataclass
class DetectorSpec:
    """
    Parameters of one detector. Lengths in meters, noise in electrons,
    gain in electrons per count.

    dark_current (e-/px/s) is optional: when it is not given the dark
    signal is derived from the detector temperature.
    """
    coating: str = 'ML15'
    pixel_side: float = 15e-6
    read_out_noise: float = 0.
    gain: float = 1.
    qe: float = 1.
    dark_current: float | None = None
    temperature: float = DETECTOR_TEMPERATURE

    @property
    def pixel_area(self) -> float:
        return self.pixel_side * self.pixel_side

    @classmethod
    def from_dict(cls, values: dict, name: str = 'detector'):
        return _from_mapping(cls, name, values)


@dataclass
class DetectorProperties:
    """The named detectors available to the calculator."""
    detectors: dict[str, DetectorSpec] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.detectors

    def get(self, name: str) -> DetectorSpec | None:
        return self.detectors.get(name)

    @classmethod
    def from_dict(cls, values: dict):
        """
        Builds the detector table from plain mappings, as produced by a
        configuration file. Entries that cannot be parsed are reported and
        left out.
        """
        detectors = {}
        for name, spec in values.items():
            try:
                detectors[name] = DetectorSpec.from_dict(spec, name=f"detectors.{name}")
            except (TypeError, AttributeError) as e:
                logger.warning("%s: failed to read detector: %s", name, e)
        return cls(detectors=detectors)


@dataclass
class InstrumentProperties:
    """
    Telescope and spectrograph parameters. coating and detector are kept in
    sync with the detector used by the last simulated arm.
    """
    f_num: float = CAHA_FOCAL_LENGTH / CAHA_APERTURE_DIAMETER
    ap_efficiency: float = CAHA_EFFECTIVE_AREA / CAHA_APERTURE_AREA
    coating: str = 'ML15'
    detector: str | None = None

    @property
    def light_cone_solid_angle(self) -> float:
        """Solid angle (sr) of the f/# light cone reaching the focal plane."""
        aperture_ang_radius = np.arctan(.5 / self.f_num)
        return np.pi * aperture_ang_radius * aperture_ang_radius

    @classmethod
    def from_dict(cls, values: dict):
        return _from_mapping(cls, 'instrument', values)


@dataclass
class SkyProperties:
    """Data files and reference values of the sky model."""
    sky_emission: str = 'CAHASky.csv'
    sky_emission_ref_airmass: float = 1.
    sky_extinction: str = 'CAHASkyExt.csv'
    moon_brightness: str = 'moonBrightness.csv'

    @classmethod
    def from_dict(cls, values: dict):
        return _from_mapping(cls, 'sky', values)


@dataclass
class Configuration:
    """All the parameter records the calculator reads."""
    instrument: InstrumentProperties = field(default_factory=InstrumentProperties)
    detectors: DetectorProperties = field(default_factory=DetectorProperties)
    sky: SkyProperties = field(default_factory=SkyProperties)

    @classmethod
    def from_dict(cls, values: dict):
        return cls(
            instrument=InstrumentProperties.from_dict(values.get('instrument', {})),
            detectors=DetectorProperties.from_dict(values.get('detectors', {})),
            sky=SkyProperties.from_dict(values.get('sky', {})),
        )
