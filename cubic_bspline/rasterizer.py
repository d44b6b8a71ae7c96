import numpy as np
import numba as nb


def rasterize_path(samples: np.ndarray[np.floating]) -> np.ndarray[np.integer]:
    """
    Convert a dense sequence of 2D samples into a connected path of integer lattice points.

    Each sample is rounded to the nearest lattice point. The first one is always kept,
    then every rounded sample that differs from the last emitted point is reached by a
    Bresenham-style walk along the axis of larger delta, so that two consecutive points
    of the path are 8-connected.

    Parameters
    ----------
    samples : np.ndarray[np.floating]
        Curve samples of shape (2, m).

    Returns
    -------
    path : np.ndarray[np.integer]
        Lattice points of shape (2, p), without consecutive duplicates and with
        `max(|dx|, |dy|) <= 1` between consecutive points.

    Raises
    ------
    ValueError
        If `samples` isn't a (2, m) array.

    Examples
    --------
    >>> rasterize_path(np.array([[0., 3.], [0., 1.]]))
    array([[0, 1, 2, 3],
           [0, 0, 1, 1]])
    """
    samples = np.asarray(samples, dtype="float")
    if samples.ndim != 2 or samples.shape[0] != 2:
        raise ValueError(
            f"Can only rasterize 2D samples of shape (2, m), got {samples.shape} !"
        )
    rounded = np.ascontiguousarray(np.rint(samples).astype(np.int64))
    return np.ascontiguousarray(_walk_lattice(rounded))


@nb.njit(nb.int64[:, :](nb.int64[:, :]), cache=True)
def _walk_lattice(pts):
    """
    Walk from lattice point to lattice point, filling the gaps.

    Parameters
    ----------
    pts : numpy.array of int
        Rounded samples of shape (2, m).

    Returns
    -------
    path : numpy.array of int
        Connected lattice path of shape (2, p).

    """
    m = pts.shape[1]
    if m == 0:
        return np.empty((2, 0), dtype=np.int64)
    capacity = 1
    for i in range(1, m):
        capacity += max(abs(pts[0, i] - pts[0, i - 1]), abs(pts[1, i] - pts[1, i - 1]))
    path = np.empty((2, capacity), dtype=np.int64)
    path[0, 0] = pts[0, 0]
    path[1, 0] = pts[1, 0]
    count = 1
    for i in range(1, m):
        x0 = path[0, count - 1]
        y0 = path[1, count - 1]
        dx = pts[0, i] - x0
        dy = pts[1, i] - y0
        steps = max(abs(dx), abs(dy))
        for s in range(1, steps + 1):
            x = x0 + np.int64(np.floor(s * dx / steps + 0.5))
            y = y0 + np.int64(np.floor(s * dy / steps + 0.5))
            if x != path[0, count - 1] or y != path[1, count - 1]:
                path[0, count] = x
                path[1, count] = y
                count += 1
    return path[:, :count]
