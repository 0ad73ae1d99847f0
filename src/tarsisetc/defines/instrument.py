from enum import Enum
import numpy as np

# Calar Alto 3.5m telescope
CAHA_APERTURE_DIAMETER = 3.5     # m
CAHA_FOCAL_LENGTH = 12.195       # m
CAHA_APERTURE_AREA = .25 * np.pi * CAHA_APERTURE_DIAMETER**2
CAHA_EFFECTIVE_AREA = 9.093      # m^2

# TARSIS spectrograph
TARSIS_SLICES = 40               # Slices per field of view
SPECTRAL_PIXEL_LENGTH = 2048     # Pixels along the dispersion direction

DETECTOR_TEMPERATURE = 193       # K


class InstrumentArm(Enum):
    """The two optical paths of the spectrograph."""
    BLUE = 'blue'
    RED = 'red'
