from typing import Union

import numpy as np
import numba as nb


CUBIC_BSPLINE_MATRIX = np.array(
    [
        [1.0, 4.0, 1.0, 0.0],
        [-3.0, 0.0, 3.0, 0.0],
        [3.0, -6.0, 3.0, 0.0],
        [-1.0, 3.0, -3.0, 1.0],
    ],
    dtype="float",
) / 6.0
"""
Uniform cubic B-spline basis matrix `M`. The four blending weights of a segment
are obtained as `T(t, d) @ M` where `T` is the monomial row `[1, t, t², t³]`
differentiated `d` times.
"""

MAX_DERIVATIVE_ORDER = 3


def check_derivative_order(d: int):
    if d < 0 or d > MAX_DERIVATIVE_ORDER:
        raise ValueError(
            f"Derivative order must be in [0, {MAX_DERIVATIVE_ORDER}], got {d} !"
        )


def monomials(
    t: Union[float, np.ndarray[np.floating]], d: int = 0
) -> np.ndarray[np.floating]:
    """
    Compute the monomial row `T(t, d)` of the cubic basis, differentiated `d` times.

    Parameters
    ----------
    t : Union[float, np.ndarray[np.floating]]
        Normalized parameter(s) of the segment.
    d : int, optional
        Derivative order, in `{0, 1, 2, 3}`. By default, 0.

    Returns
    -------
    T : np.ndarray[np.floating]
        Array of shape (4,) for a scalar `t`, (`t.size`, 4) otherwise.

    Examples
    --------
    >>> monomials(0.5)
    array([1.   , 0.5  , 0.25 , 0.125])
    >>> monomials(0.5, d=2)
    array([0., 0., 2., 3.])
    """
    check_derivative_order(d)
    t_arr = np.asarray(t, dtype="float")
    ts = t_arr.reshape(-1)
    T = np.zeros((ts.size, 4), dtype="float")
    if d == 0:
        T[:, 0] = 1.0
        T[:, 1] = ts
        T[:, 2] = ts**2
        T[:, 3] = ts**3
    elif d == 1:
        T[:, 1] = 1.0
        T[:, 2] = 2 * ts
        T[:, 3] = 3 * ts**2
    elif d == 2:
        T[:, 2] = 2.0
        T[:, 3] = 6 * ts
    else:
        T[:, 3] = 6.0
    if t_arr.ndim == 0:
        return T[0]
    return T


def blending_weights(
    t: Union[float, np.ndarray[np.floating]], d: int = 0
) -> np.ndarray[np.floating]:
    """
    Compute the four blending weights `B = T(t, d) @ M` of the uniform cubic B-spline.

    The weights multiply, in order, the control points `i - 1`, `i`, `i + 1` and `i + 2`
    of the segment `i` being evaluated.

    Parameters
    ----------
    t : Union[float, np.ndarray[np.floating]]
        Normalized parameter(s). Every value must lie in [0, 1] : no clamping is
        performed, the caller is responsible for the normalization.
    d : int, optional
        Derivative order, in `{0, 1, 2, 3}`. By default, 0.

    Returns
    -------
    B : np.ndarray[np.floating]
        Weights of shape (4,) for a scalar `t`, (`t.size`, 4) otherwise.

    Raises
    ------
    ValueError
        If a parameter lies outside [0, 1] or if `d` is not a valid derivative order.

    Notes
    -----
    - For `d=0` the weights are a partition of unity.
    - For `d>0` the weights sum to zero.

    Examples
    --------
    >>> blending_weights(0.)
    array([0.16666667, 0.66666667, 0.16666667, 0.        ])
    >>> blending_weights(1.)
    array([0.        , 0.16666667, 0.66666667, 0.16666667])
    """
    check_derivative_order(d)
    t_arr = np.asarray(t, dtype="float")
    if np.any(t_arr < 0) or np.any(t_arr > 1):
        raise ValueError("Parameter t is outside of the normalized interval [0, 1] !")
    if t_arr.ndim == 0:
        return _blending_weights(float(t_arr), d)
    return monomials(t_arr, d) @ CUBIC_BSPLINE_MATRIX


# %% fast functions for evaluation


@nb.njit(nb.float64[:](nb.float64, nb.int64), cache=True)
def _blending_weights(t, d):
    """
    Evaluate the four blending weights for one parameter value.

    Parameters
    ----------
    t : float
        Normalized parameter in [0, 1].
    d : int
        Derivative order.

    Returns
    -------
    B : numpy.array of float
        The weights `T(t, d) @ M`.

    """
    T = np.zeros(4, dtype=np.float64)
    if d == 0:
        T[0] = 1.0
        T[1] = t
        T[2] = t * t
        T[3] = t * t * t
    elif d == 1:
        T[1] = 1.0
        T[2] = 2.0 * t
        T[3] = 3.0 * t * t
    elif d == 2:
        T[2] = 2.0
        T[3] = 6.0 * t
    elif d == 3:
        T[3] = 6.0
    else:
        raise ValueError("Derivative order must be in [0, 3] !")
    B = np.zeros(4, dtype=np.float64)
    for j in range(4):
        for i in range(4):
            B[j] += T[i] * CUBIC_BSPLINE_MATRIX[i, j]
    return B
