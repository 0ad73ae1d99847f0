import pytest
import numpy as np
import xarray as xr

from tarsisetc.datatypes.curve import Curve, CurveAxis, kahan_sum


@pytest.fixture
def ramp() -> Curve:
    return Curve([1., 2., 3.], [10., 20., 30.], oob_left=-1., oob_right=5.)


def test_extrapolation_and_interpolation(ramp):
    """
    Tests that values outside the keys are the extrapolation constants and
    that values between keys are linear.
    """
    assert ramp(0.) == -1.
    assert ramp(0.999) == -1.
    assert ramp(3.001) == 5.
    assert ramp(100.) == 5.

    assert ramp(1.) == 10.
    assert ramp(3.) == 30.
    np.testing.assert_allclose(ramp(np.array([1.5, 2.25, 2.75])), [15., 22.5, 27.5])


def test_empty_curve_evaluates_to_oob_right():
    curve = Curve(oob_left=1., oob_right=2.)
    assert len(curve) == 0
    assert curve(0.) == 2.
    np.testing.assert_array_equal(curve(np.zeros(3)), [2., 2., 2.])
    assert np.isnan(curve.x_min)


def test_set_inserts_and_overwrites():
    curve = Curve()
    curve[2.] = 4.
    curve.set(1., 1.)
    curve[2.] = 5.

    np.testing.assert_array_equal(curve.x_points(), [1., 2.])
    np.testing.assert_array_equal(curve.y_points(), [1., 5.])
    assert curve[1.5] == 3.


def test_duplicate_keys_keep_first_point():
    curve = Curve([2., 1., 2.], [7., 1., 9.])
    np.testing.assert_array_equal(curve.x_points(), [1., 2.])
    np.testing.assert_array_equal(curve.y_points(), [1., 7.])


def test_mismatched_lengths_are_rejected():
    with pytest.raises(ValueError, match="same length"):
        Curve([1., 2.], [1.])


def test_getdiff():
    """
    Tests the slope inside segments, on interior points and at the ends.
    """
    curve = Curve([0., 1., 3.], [0., 2., 6.])
    assert curve.getdiff(.5) == pytest.approx(2.)
    assert curve.getdiff(2.) == pytest.approx(2.)
    assert curve.getdiff(1.) == pytest.approx(2.)

    assert curve.getdiff(0.) == 0.
    assert curve.getdiff(3.) == 0.
    assert curve.getdiff(-1.) == 0.
    assert curve.getdiff(4.) == 0.

    np.testing.assert_allclose(curve.getdiff(np.array([.5, 2.])), [2., 2.])


def test_integral():
    triangle = Curve([0., 1., 2.], [0., 1., 0.])
    assert triangle.integral() == pytest.approx(1.)
    assert triangle.dist_mean() == pytest.approx(1.)

    assert Curve([0.], [1.]).integral() == 0.
    assert Curve([0., 1.], [1., 1.], oob_right=1.).integral() == np.inf
    assert Curve([0., 1.], [1., 1.], oob_left=-1.).integral() == -np.inf


def test_integrate_then_getdiff_reconstructs_values():
    """
    Tests that the derivative of the cumulative integral gives back the
    original values at the interior points.
    """
    x = np.linspace(0., 5., 11)
    y = 2. * x + 1.
    curve = Curve(x, y)
    curve.integrate()

    assert len(curve) == len(x) + 1
    assert curve.oob_left == 0.
    assert curve.oob_right == pytest.approx(30.)
    np.testing.assert_allclose(curve.getdiff(x[1:-1]), y[1:-1], rtol=1e-10)


def test_integrate_small_curves():
    empty = Curve()
    empty.integrate(3.)
    assert empty.oob_left == 3. and empty.oob_right == 3.

    single = Curve([1.], [5.])
    single.integrate(2.)
    np.testing.assert_array_equal(single.y_points(), [2.])
    assert single.oob_right == 2.


def test_flip_is_self_inverse():
    x = np.array([0., 1., 2.5, 4.])
    y = np.array([1., 3., 4., 10.])
    curve = Curve(x, y, x_units='m', y_units='px')

    curve.flip()
    np.testing.assert_array_equal(curve.x_points(), y)
    assert curve.x_units == 'px'

    curve.flip()
    np.testing.assert_array_equal(curve.x_points(), x)
    np.testing.assert_array_equal(curve.y_points(), y)
    assert curve.x_units == 'm'


def test_add_and_multiply_use_union_of_keys():
    a = Curve([0., 1., 2.], [1., 1., 1.])
    b = Curve([.5, 2., 3.], [2., 2., 2.])

    total = a.copy()
    total.add(b)
    np.testing.assert_array_equal(total.x_points(), [0., .5, 1., 2., 3.])
    np.testing.assert_allclose(total.y_points(), [1., 3., 3., 3., 2.])

    product = a.copy()
    product.multiply_by(b)
    np.testing.assert_array_equal(product.x_points(), [0., .5, 1., 2., 3.])
    np.testing.assert_allclose(product.y_points(), [0., 2., 2., 2., 0.])


def test_add_constant_shifts_values_and_oob():
    curve = Curve([0., 1.], [1., 2.])
    curve.add(3.)
    np.testing.assert_array_equal(curve.y_points(), [4., 5.])
    assert curve.oob_left == 3. and curve.oob_right == 3.


def test_scale_and_invert_axes():
    curve = Curve([1., 2.], [2., 4.], oob_left=1., oob_right=2.)
    curve.scale_axis(CurveAxis.X, 10.)
    np.testing.assert_array_equal(curve.x_points(), [10., 20.])

    curve.scale_axis(CurveAxis.Y, .5)
    np.testing.assert_array_equal(curve.y_points(), [1., 2.])
    assert curve.oob_right == 1.

    curve.invert_axis(CurveAxis.Y, 4.)
    np.testing.assert_array_equal(curve.y_points(), [4., 2.])
    assert curve.oob_left == 8.

    curve.invert_axis(CurveAxis.X, 100.)
    np.testing.assert_array_equal(curve.x_points(), [5., 10.])
    np.testing.assert_array_equal(curve.y_points(), [2., 4.])


def test_scale_axis_through_curve():
    curve = Curve([1., 2.], [1., 2.])
    doubler = Curve([0., 10.], [0., 20.])
    curve.scale_axis(CurveAxis.X, doubler)
    np.testing.assert_array_equal(curve.x_points(), [2., 4.])


def test_assign_layers_other_curve():
    """
    Tests that assign overwrites the overlap, keeps own points outside it
    and takes the extrapolation of the wider curve.
    """
    base = Curve([0., 1., 2., 5.], [1., 1., 1., 1.], oob_left=7., oob_right=7.)
    top = Curve([.5, 2.5], [3., 3.], oob_left=0., oob_right=9.)

    base.assign(top)
    np.testing.assert_array_equal(base.x_points(), [0., .5, 1., 2., 2.5, 5.])
    np.testing.assert_array_equal(base.y_points(), [1., 3., 3., 3., 3., 1.])
    assert base.oob_left == 7.
    assert base.oob_right == 7.

    empty = Curve()
    empty.assign(top)
    np.testing.assert_array_equal(empty.x_points(), top.x_points())
    assert empty.oob_right == 9.


def test_from_existing_scales_values():
    source = Curve([0., 1.], [1., 2.], oob_right=1., y_units='W')
    target = Curve([5.], [5.])
    target.from_existing(source, 3.)

    np.testing.assert_array_equal(target.x_points(), [0., 1.])
    np.testing.assert_array_equal(target.y_points(), [3., 6.])
    assert target.oob_right == 3.
    assert target.y_units == 'W'

    # The source is left untouched
    np.testing.assert_array_equal(source.y_points(), [1., 2.])


def test_extend_and_apply():
    curve = Curve([0., 1.], [4., 9.])
    curve.extend_left()
    curve.extend_right()
    assert curve(-1.) == 4. and curve(2.) == 9.

    curve.apply(np.sqrt)
    np.testing.assert_array_equal(curve.y_points(), [2., 3.])
    assert curve.oob_left == 2. and curve.oob_right == 3.


def test_save_and_load(tmp_path):
    curve = Curve([1., 2., 3.], [.1, .2, .3])
    filepath = tmp_path / 'curve.csv'
    curve.save(filepath)

    loaded = Curve()
    loaded.load(filepath)
    np.testing.assert_allclose(loaded.x_points(), curve.x_points())
    np.testing.assert_allclose(loaded.y_points(), curve.y_points())


def test_dataarray_conversion():
    curve = Curve([1., 2.], [3., 4.], oob_left=1., x_units='m', y_units='W')
    data_array = curve.to_dataarray(name='flux')

    assert isinstance(data_array, xr.DataArray)
    assert data_array.dims == ('x',)
    assert data_array.attrs['units'] == 'W'
    assert data_array.x.attrs['units'] == 'm'

    restored = Curve.from_dataarray(data_array)
    np.testing.assert_array_equal(restored.y_points(), [3., 4.])
    assert restored.oob_left == 1.
    assert restored.x_units == 'm'


def test_kahan_sum():
    terms = np.full(10000, .1)
    assert kahan_sum(terms) == pytest.approx(1000., rel=1e-14)
    assert kahan_sum([]) == 0.


def test_domain_queries():
    curve = Curve.from_points([1., 4.], [0., 1.])
    assert curve.x_min == 1. and curve.x_max == 4.
    assert curve.is_oob(.5)
    assert not curve.is_oob(4.)
    assert Curve().is_oob(0.)
