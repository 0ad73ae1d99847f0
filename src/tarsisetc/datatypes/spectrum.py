import numpy as np

from tarsisetc.datatypes.curve import Curve, CurveAxis
from tarsisetc.defines.exceptions import InvalidParameterError


class Spectrum(Curve):
    """
    A Curve holding a spectral density, e.g. power per unit wavelength.

    Changes of variable on the X axis divide the values by the absolute
    derivative of the mapping, so that the integral of the spectrum (the
    total power) does not depend on the parametrization:

        f_new(g(x)) = f_old(x) / |g'(x)|
    """

    def scale_axis(self, axis: CurveAxis, factor, diff: Curve | None = None):
        """
        Rescales or remaps an axis.

        For the X axis, factor may be a constant or a Curve g. When g is a
        curve its derivative is taken from diff if given (useful when the
        analytic derivative is known, e.g. g is the integral of diff) and
        from g.getdiff otherwise. Points where the derivative vanishes are
        dropped.
        """
        if axis is not CurveAxis.X:
            Curve.scale_axis(self, axis, factor)
            return

        if not isinstance(factor, Curve):
            if factor == 0:
                raise InvalidParameterError("Cannot scale the X axis of a spectrum by zero")
            jacobian = abs(factor)
            self._replace_points(self._x * factor, self._y / jacobian)
            self.oob_left /= jacobian
            self.oob_right /= jacobian
            return

        if len(self._x) == 0:
            return

        derivative = diff.get if diff is not None else factor.getdiff
        x_old = self._x
        dfdx = np.abs(derivative(x_old))
        keep = dfdx != 0

        if self.oob_left != 0.0:
            self.oob_left /= abs(derivative(x_old[0]))
        if self.oob_right != 0.0:
            self.oob_right /= abs(derivative(x_old[-1]))

        self._replace_points(factor(x_old[keep]), self._y[keep] / dfdx[keep])

    def invert_axis(self, axis: CurveAxis, factor: float = 1.):
        """
        Replaces every value v of the axis by factor / v.

        On the X axis, the region right of the last point collapses into
        a single point at the origin, of infinite density if the spectrum
        extrapolated to a non-zero value there. Keys must be positive.
        """
        if axis is not CurveAxis.X:
            Curve.invert_axis(self, axis, factor)
            return

        if len(self._x) == 0:
            return

        if self._x[0] <= 0:
            raise InvalidParameterError(
                "Inverting the X axis of a spectrum requires strictly positive X values")

        # g(x) = factor / x, 1 / |g'(x)| = x^2 / factor
        x_old = self._x
        y_new = self._y * (x_old * x_old) / factor
        x_new = factor / x_old

        origin = np.inf if self.oob_right != 0. else 0.
        self._replace_points(np.append(x_new, 0.), np.append(y_new, origin))

        self.oob_left = origin
        self.oob_right = 0.
