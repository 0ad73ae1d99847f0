import pytest
from pathlib import Path
import numpy as np

from tarsisetc.defines.instrument import TARSIS_SLICES
from tarsisetc.defines.properties import (
    Configuration, DetectorProperties, DetectorSpec, InstrumentProperties, SkyProperties)
from tarsisetc.main.simulation import Simulation
from tarsisetc.utils.data_files import DataFileManager
from tarsisetc.utils.generate_source import flat_ab_spectrum

BLUE_DISPERSION_NM_PER_PX = 0.12
RED_DISPERSION_NM_PER_PX = 0.18
FWHM_PX = 2.5


def _write_rows(filepath: Path, rows, delimiter=', '):
    with open(filepath, 'w') as f:
        for row in rows:
            f.write(delimiter.join(f'{value:g}' for value in row) + '\n')


def _write_slice_table(filepath: Path, wavelengths_nm, value):
    rows = [wavelengths_nm]
    rows += [np.full_like(wavelengths_nm, value) for _ in range(TARSIS_SLICES)]
    _write_rows(filepath, rows)


@pytest.fixture(scope='session')
def data_dir(tmp_path_factory) -> Path:
    """
    Writes a minimal, self-consistent set of instrument, sky and filter
    tables into a session temporary directory.
    """
    path = tmp_path_factory.mktemp('etc_data')

    # Transmission: row 0 wavelength (nm), one row per coating
    blue_wl = np.arange(300., 901., 50.)
    _write_rows(path / 'blueTransmission.csv',
                [blue_wl, np.full_like(blue_wl, .8), np.full_like(blue_wl, .6)])
    red_wl = np.arange(300., 1001., 50.)
    _write_rows(path / 'redTransmission.csv', [red_wl, np.full_like(red_wl, .7)])

    # Dispersion (nm/px) and resolution (FWHM px), one row per slice
    blue_cal_wl = np.arange(320., 621., 10.)
    red_cal_wl = np.arange(600., 1001., 10.)
    _write_slice_table(path / 'dispersionBlue.csv', blue_cal_wl, BLUE_DISPERSION_NM_PER_PX)
    _write_slice_table(path / 'dispersionRed.csv', red_cal_wl, RED_DISPERSION_NM_PER_PX)
    _write_slice_table(path / 'pxResolutionBlue.csv', blue_cal_wl, FWHM_PX)
    _write_slice_table(path / 'pxResolutionRed.csv', red_cal_wl, FWHM_PX)

    # Sky emission: index, wavelength (A), flux (1e-16 erg / (s cm^2 A))
    sky_wl = np.arange(3000., 10001., 100.)
    with open(path / 'CAHASky.csv', 'w') as f:
        f.write('# index, wavelength, flux\n')
        for i, wl in enumerate(sky_wl):
            f.write(f'{i}, {wl:g}, 1.0\n')

    ext_wl = np.arange(3000., 10001., 500.)
    _write_rows(path / 'CAHASkyExt.csv', zip(ext_wl, np.full_like(ext_wl, .2)))

    _write_rows(path / 'moonBrightness.csv', [(0, 22.), (50, 20.), (100, 18.)])

    # Triangular R band between 500 and 800 nm, whitespace separated
    r_wl = np.arange(5000., 8001., 100.)
    r_trans = np.clip(1 - np.abs(r_wl - 6500.) / 1500., 0., 1.)
    _write_rows(path / 'Generic_Cousins.R.dat', zip(r_wl, r_trans), delimiter=' ')

    return path


@pytest.fixture
def data_files(data_dir: Path) -> DataFileManager:
    """Fixture to provide a DataFileManager searching only the synthetic tables."""
    return DataFileManager(search_paths=[data_dir])


@pytest.fixture
def detector_properties() -> DetectorProperties:
    return DetectorProperties(detectors={
        'CCD231-84-0-S77': DetectorSpec(coating='ML15', read_out_noise=3., gain=1.5, qe=.9),
        'CCD231-84-0-H69': DetectorSpec(coating='ML15', read_out_noise=2.5, gain=1.2, qe=.85,
                                        dark_current=1e-3),
        'CCD-NBB': DetectorSpec(coating='NBB', read_out_noise=3.),
    })


@pytest.fixture
def configuration(detector_properties: DetectorProperties) -> Configuration:
    return Configuration(
        instrument=InstrumentProperties(),
        detectors=detector_properties,
        sky=SkyProperties(),
    )


@pytest.fixture
def simulation(configuration: Configuration, data_files: DataFileManager) -> Simulation:
    """Fixture to create a Simulation over the synthetic tables."""
    return Simulation(configuration, data_files)


@pytest.fixture
def flat_spectrum():
    """Constant AB 18 mag/arcsec^2 between 320 and 820 nm, every 10 nm."""
    return flat_ab_spectrum(mag=18., wl_min_nm=320, wl_max_nm=820, step_nm=10)
