from dataclasses import dataclass

from tarsisetc.defines.exceptions import ConfigurationError
from tarsisetc.defines.instrument import InstrumentArm


@dataclass
class SimulationParams():
    """
    A data class to hold all settings for a given simulation run.
    """
    blue_detector: str = 'CCD231-84-0-S77'
    red_detector: str = 'CCD231-84-0-H69'
    airmass: float = 1.
    moon: float = 0.           # Illuminated fraction, in percent
    exposure: float = 3600.    # s
    r_ab_mag: float = 18.      # mag/arcsec^2
    slice: int = 20

    def detector_for(self, arm: InstrumentArm) -> str:
        if arm is InstrumentArm.BLUE:
            return self.blue_detector
        if arm is InstrumentArm.RED:
            return self.red_detector
        raise ConfigurationError(f"Invalid arm configuration: {arm!r}")
