import numpy as np
import astropy.units as u
from scipy.constants import c, h

SPEED_OF_LIGHT = c      # m/s
PLANCK_CONSTANT = h     # J s

JANSKY = (1 * u.Jy).to_value(u.W / u.m**2 / u.Hz)
AB_ZEROPOINT = 3631 * JANSKY  # W / (m^2 Hz)

ARCSEC = (1 * u.arcsec).to_value(u.rad)
ARCSEC_2_TO_STERADIAN = ARCSEC**2

STD2FWHM = np.sqrt(8 * np.log(2))

# 1e-16 erg / (s cm^2 A) over a 2.7" diameter fibre, in W / (m^2 A sr)
CAHA_SKY_UNITS = 7.4309394e-10

ANGSTROM = 1e-10
NANOMETER = 1e-9


def mag2frac(mag):
    '''Converts a magnitude difference to a flux ratio.'''
    return np.power(10, -.4 * mag)


def surface_brightness_ab_to_freq_radiance(mag):
    '''
    Converts an AB surface brightness (mag/arcsec^2) to a frequency
    radiance in W / (m^2 sr Hz).
    '''
    return mag2frac(mag) * AB_ZEROPOINT / ARCSEC_2_TO_STERADIAN


def surface_brightness_ab_to_radiance(mag, wavelength_m):
    '''
    Converts an AB surface brightness (mag/arcsec^2) to a wavelength
    radiance in W / (m^2 sr m), evaluated at wavelength_m.
    '''
    fnu = surface_brightness_ab_to_freq_radiance(mag)
    return SPEED_OF_LIGHT / (wavelength_m * wavelength_m) * fnu


def surface_brightness_vega_to_radiance(mag, wavelength_m=None):
    '''
    Converts a Vega surface brightness (mag/arcsec^2) to a wavelength
    radiance in W / (m^2 sr m). The zero point is taken flat in wavelength,
    so wavelength_m is accepted only for symmetry with the AB conversion.
    '''
    return mag2frac(mag) * 0.03631 / ARCSEC_2_TO_STERADIAN
