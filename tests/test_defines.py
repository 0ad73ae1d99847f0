import logging
import pytest
import numpy as np

from tarsisetc.defines.exceptions import ConfigurationError, EtcError, InvalidParameterError
from tarsisetc.defines.instrument import (
    CAHA_APERTURE_AREA, CAHA_APERTURE_DIAMETER, CAHA_EFFECTIVE_AREA, CAHA_FOCAL_LENGTH, InstrumentArm)
from tarsisetc.defines.properties import (
    Configuration, DetectorProperties, DetectorSpec, InstrumentProperties, SkyProperties)
from tarsisetc.defines.simulationparams import SimulationParams


def test_simulation_params_defaults():
    """
    Tests the default observing setup and the detector paired with each arm.
    """
    params = SimulationParams()
    assert params.airmass == 1.
    assert params.moon == 0.
    assert params.exposure == 3600.
    assert params.slice == 20

    assert params.detector_for(InstrumentArm.BLUE) == 'CCD231-84-0-S77'
    assert params.detector_for(InstrumentArm.RED) == 'CCD231-84-0-H69'

    with pytest.raises(ConfigurationError):
        params.detector_for('green')


def test_instrument_properties_defaults():
    props = InstrumentProperties()
    assert props.f_num == pytest.approx(CAHA_FOCAL_LENGTH / CAHA_APERTURE_DIAMETER)
    assert props.ap_efficiency == pytest.approx(CAHA_EFFECTIVE_AREA / CAHA_APERTURE_AREA)
    assert 0 < props.ap_efficiency < 1

    half_angle = np.arctan(.5 / props.f_num)
    assert props.light_cone_solid_angle == pytest.approx(np.pi * half_angle**2)


def test_detector_spec():
    spec = DetectorSpec(pixel_side=10e-6)
    assert spec.pixel_area == pytest.approx(1e-10)
    assert spec.dark_current is None
    assert spec.temperature == 193


def test_configuration_from_dict(caplog):
    """
    Tests building the configuration records from plain mappings, as read
    from a configuration file.
    """
    values = {
        'instrument': {'coating': 'NBB', 'f_num': 4.},
        'detectors': {
            'CCD-A': {'read_out_noise': 3., 'gain': 2., 'colour': 'blue'},
            'CCD-B': 'not a mapping',
        },
        'sky': {'sky_emission_ref_airmass': 1.2},
    }

    with caplog.at_level(logging.WARNING, logger='tarsisetc.defines.properties'):
        config = Configuration.from_dict(values)

    assert config.instrument.coating == 'NBB'
    assert config.instrument.f_num == 4.
    assert config.sky.sky_emission_ref_airmass == 1.2
    assert config.sky.sky_emission == 'CAHASky.csv'

    assert 'CCD-A' in config.detectors
    assert 'CCD-B' not in config.detectors
    assert config.detectors.get('CCD-A').gain == 2.
    assert config.detectors.get('missing') is None

    assert 'colour' in caplog.text
    assert 'CCD-B' in caplog.text


def test_default_configuration():
    config = Configuration()
    assert isinstance(config.instrument, InstrumentProperties)
    assert isinstance(config.detectors, DetectorProperties)
    assert isinstance(config.sky, SkyProperties)
    assert config.detectors.detectors == {}


def test_exception_hierarchy():
    assert issubclass(ConfigurationError, EtcError)
    assert issubclass(ConfigurationError, RuntimeError)
    assert issubclass(InvalidParameterError, EtcError)
    assert issubclass(InvalidParameterError, ValueError)
