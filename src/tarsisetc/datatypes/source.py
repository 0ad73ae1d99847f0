import numpy as np
import xarray as xr

from tarsisetc.datatypes.curve import Curve, CurveAxis
from tarsisetc.datatypes.spectrum import Spectrum
from tarsisetc.datatypes.tables import read_curve_table
from tarsisetc.utils.unit_conversions import NANOMETER


def read_input_spectrum(filepath, wavelength_scale=NANOMETER, reader=read_curve_table) -> Spectrum:
    '''
    Initializes an input spectrum from a 2-column table.
    Column 1: wavelength (nm unless wavelength_scale says otherwise)
    Column 2: radiance (W/m²/sr/m)
    '''
    spectrum = Spectrum()
    spectrum.load(filepath, reader=reader)
    if len(spectrum) == 0:
        raise ValueError(f"{filepath} contains no valid (wavelength, radiance) rows")

    # Unit relabel of the keys only, the radiance column is already per metre
    Curve.scale_axis(spectrum, CurveAxis.X, wavelength_scale)
    spectrum.set_units(CurveAxis.X, 'm')
    spectrum.set_units(CurveAxis.Y, 'W/(m^2 sr m)')
    return spectrum


def spectrum_from_dataarray(data_array: xr.DataArray, wavelength_scale=NANOMETER) -> Spectrum:
    '''
    Builds an input spectrum from a 1D DataArray with a 'wavelength'
    coordinate, e.g. one returned by a point source reader.
    '''
    if data_array.ndim != 1 or 'wavelength' not in data_array.coords:
        raise ValueError("Expected a 1D DataArray with a 'wavelength' coordinate")

    spectrum = Spectrum(
        np.asarray(data_array.coords['wavelength'].values, dtype=float) * wavelength_scale,
        np.asarray(data_array.values, dtype=float),
        x_units='m',
        y_units='W/(m^2 sr m)',
    )
    return spectrum
