from enum import Enum

import numpy as np
import xarray as xr

from tarsisetc.datatypes.tables import read_curve_table, save_curve_table


class CurveAxis(Enum):
    X = 'x'
    Y = 'y'


def kahan_cumsum(terms) -> np.ndarray:
    """
    Running sum of terms with Kahan compensation. Entry i holds the sum of
    terms[0..i].
    """
    out = np.empty(len(terms), dtype=float)
    accum = 0.0
    err = 0.0
    for i, term in enumerate(terms):
        term_real = float(term) - err
        tmp = accum + term_real
        err = (tmp - accum) - term_real
        accum = tmp
        out[i] = accum
    return out


def kahan_sum(terms) -> float:
    sums = kahan_cumsum(terms)
    return float(sums[-1]) if len(sums) else 0.0


def _first_of_each(keys: np.ndarray, values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Sorts (keys, values) by key. When several entries share a key the first
    one in the given order is kept.
    """
    unique_keys, first_idx = np.unique(keys, return_index=True)
    return unique_keys.astype(float), values[first_idx].astype(float)


class Curve:
    """
    A piecewise-linear function of one real variable.

    Points are kept sorted by X with unique keys. Between two points the
    curve is interpolated linearly; outside them it takes the constant
    extrapolation values oob_left and oob_right. Every transform mutates the
    curve in place.
    """

    def __init__(self, x=None, y=None, oob_left: float = 0., oob_right: float = 0.,
                 x_units: str = '', y_units: str = ''):
        self._x = np.empty(0, dtype=float)
        self._y = np.empty(0, dtype=float)
        self.oob_left = float(oob_left)
        self.oob_right = float(oob_right)
        self.x_units = x_units
        self.y_units = y_units

        if x is not None:
            self._replace_points(np.asarray(x, dtype=float), np.asarray(y, dtype=float))

    @classmethod
    def from_points(cls, x, y, **kwargs):
        return cls(x, y, **kwargs)

    def _replace_points(self, x: np.ndarray, y: np.ndarray):
        if x.shape != y.shape:
            raise ValueError(f"X and Y must have the same length, got {x.shape} and {y.shape}")
        self._x, self._y = _first_of_each(x, y)

    def __len__(self):
        return len(self._x)

    def __repr__(self):
        return (f"{type(self).__name__}(points={len(self)}, "
                f"oob_left={self.oob_left!r}, oob_right={self.oob_right!r})")

    def __getitem__(self, x):
        return self.get(x)

    def __setitem__(self, x, y):
        self.set(x, y)

    def __call__(self, x):
        return self.get(x)

    def x_points(self) -> np.ndarray:
        return self._x.copy()

    def y_points(self) -> np.ndarray:
        return self._y.copy()

    @property
    def x_min(self) -> float:
        return float(self._x[0]) if len(self._x) else np.nan

    @property
    def x_max(self) -> float:
        return float(self._x[-1]) if len(self._x) else np.nan

    def is_oob(self, x) -> bool:
        if len(self._x) == 0:
            return True
        return bool(x < self._x[0] or x > self._x[-1])

    def set_units(self, axis: CurveAxis, units: str):
        if axis is CurveAxis.X:
            self.x_units = units
        else:
            self.y_units = units

    def set_oob(self, left: float, right: float):
        self.oob_left = float(left)
        self.oob_right = float(right)

    def set(self, x: float, y: float):
        """Inserts a point, replacing any existing point at x."""
        idx = np.searchsorted(self._x, x)
        if idx < len(self._x) and self._x[idx] == x:
            self._y[idx] = y
        else:
            self._x = np.insert(self._x, idx, x)
            self._y = np.insert(self._y, idx, y)

    def set_many(self, x, y):
        """Inserts several points at once, replacing existing points with the same keys."""
        x = np.atleast_1d(np.asarray(x, dtype=float))
        y = np.atleast_1d(np.asarray(y, dtype=float))
        keep = ~np.isin(self._x, x)
        self._replace_points(np.concatenate((x, self._x[keep])), np.concatenate((y, self._y[keep])))

    def clear(self):
        self._x = np.empty(0, dtype=float)
        self._y = np.empty(0, dtype=float)
        self.oob_left = self.oob_right = 0.

    def copy(self):
        new = type(self)()
        new._copy_from(self)
        return new

    def _copy_from(self, other: 'Curve'):
        self._x = other._x.copy()
        self._y = other._y.copy()
        self.oob_left = other.oob_left
        self.oob_right = other.oob_right
        self.x_units = other.x_units
        self.y_units = other.y_units

    def get(self, x):
        """
        Evaluates the curve at x (scalar or array).

        Values before the first point are oob_left, values after the last
        point are oob_right. An empty curve evaluates to oob_right.
        """
        scalar = np.ndim(x) == 0
        if len(self._x) == 0:
            result = np.full(np.shape(x), self.oob_right, dtype=float)
        else:
            result = np.interp(x, self._x, self._y, left=self.oob_left, right=self.oob_right)
        return float(result) if scalar else result

    def getdiff(self, x):
        """
        Local derivative at x (scalar or array).

        Inside a segment this is the segment slope. Exactly on an interior
        point, the slope between its two neighbours is used so that the
        derivative of a flipped curve is the reciprocal of the original
        one. Zero at or outside the domain ends.
        """
        scalar = np.ndim(x) == 0
        x_arr = np.atleast_1d(np.asarray(x, dtype=float))
        result = np.zeros(x_arr.shape, dtype=float)
        n = len(self._x)

        if n >= 2:
            nxt = np.searchsorted(self._x, x_arr, side='left')
            inside = (nxt > 0) & (nxt < n)
            nxt_in = np.where(inside, nxt, 1)
            on_knot = inside & (self._x[np.minimum(nxt_in, n - 1)] == x_arr)

            # Middle of a segment
            prv = nxt_in - 1
            mid = inside & ~on_knot
            x0, y0 = self._x[prv], self._y[prv]
            x1, y1 = self._x[nxt_in], self._y[nxt_in]
            with np.errstate(divide='ignore', invalid='ignore'):
                slope = (y1 - y0) / (x1 - x0)
            result[mid] = slope[mid]

            # Exactly on a knot: span both adjacent segments
            after = nxt_in + 1
            knot = on_knot & (after < n)
            after_c = np.minimum(after, n - 1)
            x2, y2 = self._x[after_c], self._y[after_c]
            with np.errstate(divide='ignore', invalid='ignore'):
                knot_slope = (y2 - y0) / (x2 - x0)
            result[knot] = knot_slope[knot]

        return float(result[0]) if scalar else result.reshape(np.shape(x))

    def integral(self) -> float:
        """
        Trapezoidal integral over the whole curve. A curve with non-zero
        extrapolation constants has unbounded support and integrates to
        +/- infinity.
        """
        unbounded = self.oob_left + self.oob_right
        if unbounded != 0:
            return np.inf * unbounded

        if len(self._x) < 2:
            return 0.

        dx = np.diff(self._x)
        my = .5 * (self._y[1:] + self._y[:-1])
        return kahan_sum(my * dx)

    def dist_mean(self) -> float:
        """First moment of the curve, i.e. the y-weighted mean of x."""
        unbounded = self.oob_left + self.oob_right
        if unbounded != 0:
            return .5 * unbounded

        if len(self._x) == 0:
            return np.nan

        dx = np.diff(self._x)
        x0 = .5 * (self._x[1:] + self._x[:-1])
        my = .5 * (self._y[1:] + self._y[:-1])
        with np.errstate(divide='ignore', invalid='ignore'):
            return kahan_sum(x0 * my * dx) / self.integral()

    def integrate(self, k: float = 0.):
        """
        Replaces the curve by its cumulative integral, starting at k on the
        first point. One extra point is appended past the end, extrapolating
        the last slope, so that the result can be interpolated up to there.
        """
        self.oob_left = k

        n = len(self._x)
        if n == 0:
            self.oob_right = k
            return

        if n == 1:
            self._y[0] = k
            self.oob_right = k
            return

        dx = np.diff(self._x)
        areas = .5 * (self._y[1:] + self._y[:-1]) * dx

        cumulative = np.empty(n, dtype=float)
        cumulative[0] = k
        cumulative[1:] = kahan_cumsum(np.concatenate(([k], areas)))[1:]

        x_last, x_prev = self._x[-1], self._x[-2]
        y_last = self._y[-1]
        step = x_last - x_prev
        extra_y = y_last * (x_last - x_prev + step) + cumulative[-2]

        self._x = np.append(self._x, x_last + step)
        self._y = np.append(cumulative, extra_y)
        self.oob_right = float(cumulative[-1])

    def flip(self):
        """
        Swaps the X and Y axes. Only meaningful for monotonic curves; for
        repeated Y values the first point is kept.
        """
        self.x_units, self.y_units = self.y_units, self.x_units
        self._replace_points(self._y, self._x)

    def extend_left(self):
        if len(self._x):
            self.oob_left = float(self._y[0])

    def extend_right(self):
        if len(self._x):
            self.oob_right = float(self._y[-1])

    def scale_axis(self, axis: CurveAxis, factor):
        """
        Multiplies an axis by a constant, or maps it through another curve
        when factor is a Curve.
        """
        if isinstance(factor, Curve):
            if axis is CurveAxis.X:
                self._replace_points(factor(self._x), self._y)
            else:
                self._y = factor(self._y)
                self.oob_left = factor(self.oob_left)
                self.oob_right = factor(self.oob_right)
            return

        if axis is CurveAxis.X:
            self._replace_points(self._x * factor, self._y)
        else:
            self._y = self._y * factor
            self.oob_left *= factor
            self.oob_right *= factor

    def invert_axis(self, axis: CurveAxis, factor: float = 1.):
        """Replaces every value v of the axis by factor / v."""
        with np.errstate(divide='ignore'):
            if axis is CurveAxis.X:
                self._replace_points(factor / self._x, self._y)
            else:
                self._y = factor / self._y
                self.oob_left = float(np.divide(factor, self.oob_left))
                self.oob_right = float(np.divide(factor, self.oob_right))

    def apply(self, func):
        """Maps Y values and extrapolation constants through a ufunc."""
        self._y = np.asarray(func(self._y), dtype=float)
        self.oob_left = float(func(self.oob_left))
        self.oob_right = float(func(self.oob_right))

    def _union_keys(self, other: 'Curve') -> np.ndarray:
        return np.union1d(self._x, other._x)

    def multiply_by(self, other: 'Curve'):
        keys = self._union_keys(other)
        values = self(keys) * other(keys)
        self._x, self._y = keys, values
        self.oob_left *= other.oob_left
        self.oob_right *= other.oob_right

    def add(self, other):
        if not isinstance(other, Curve):
            self._y = self._y + other
            self.oob_left += other
            self.oob_right += other
            return

        keys = self._union_keys(other)
        values = self(keys) + other(keys)
        self._x, self._y = keys, values
        self.oob_left += other.oob_left
        self.oob_right += other.oob_right

    def assign(self, other: 'Curve'):
        """
        Layers other on top of this curve. Own points inside the domain of
        other take its interpolated values, extrapolation constants are
        taken from other where its domain is wider, and all points of other
        are inserted. Own sampling outside the overlap is preserved.
        """
        if len(other) == 0:
            return

        if len(self) == 0:
            self._copy_from(other)
            return

        overlap = (self._x >= other._x[0]) & (self._x <= other._x[-1])
        self._y = np.where(overlap, other(self._x), self._y)

        if other._x[0] < self._x[0]:
            self.oob_left = other.oob_left

        if self._x[-1] < other._x[-1]:
            self.oob_right = other.oob_right

        self.set_many(other._x, other._y)

    def from_existing(self, other: 'Curve', y_units: float = 1.):
        """Makes this curve a copy of other, scaled in Y by y_units."""
        self._copy_from(other)
        if y_units != 1.:
            self._y = self._y * y_units
            self.oob_left *= y_units
            self.oob_right *= y_units

    def load(self, filepath, transpose: bool = False, x_col: int = 0, y_col: int = 1,
             reader=read_curve_table):
        """Replaces the curve with the (x, y) table read from filepath."""
        x, y = reader(filepath, transpose=transpose, x_col=x_col, y_col=y_col)
        self.clear()
        self._replace_points(np.asarray(x, dtype=float), np.asarray(y, dtype=float))

    def save(self, filepath, writer=save_curve_table):
        writer(filepath, self._x, self._y)

    def to_dataarray(self, name: str | None = None) -> xr.DataArray:
        data_array = xr.DataArray(
            data=self._y.copy(),
            coords={'x': self._x.copy()},
            dims=['x'],
            name=name,
            attrs={
                'units': self.y_units,
                'oob_left': self.oob_left,
                'oob_right': self.oob_right,
            }
        )
        data_array.x.attrs['units'] = self.x_units
        return data_array

    @classmethod
    def from_dataarray(cls, data_array: xr.DataArray):
        if data_array.ndim != 1:
            raise ValueError(f"Curves are one dimensional, got {data_array.ndim} dimensions")

        dim = data_array.dims[0]
        coord = data_array.coords[dim]
        curve = cls(
            coord.values,
            data_array.values,
            oob_left=data_array.attrs.get('oob_left', 0.),
            oob_right=data_array.attrs.get('oob_right', 0.),
            x_units=coord.attrs.get('units', ''),
            y_units=data_array.attrs.get('units', ''),
        )
        return curve
