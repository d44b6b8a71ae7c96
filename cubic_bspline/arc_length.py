import numpy as np


def segment_parameters(lod: int) -> np.ndarray[np.floating]:
    """
    Parameters at which a segment is sampled : `lod` values evenly spaced over [0, 1],
    both ends included.

    Examples
    --------
    >>> segment_parameters(5)
    array([0.  , 0.25, 0.5 , 0.75, 1.  ])
    """
    return np.linspace(0.0, 1.0, lod)


def cumulative_length(pts: np.ndarray[np.floating]) -> np.ndarray[np.floating]:
    """
    Running length of the polyline through the columns of `pts`.

    Parameters
    ----------
    pts : np.ndarray[np.floating]
        Points of shape (`NPh`, m).

    Returns
    -------
    lengths : np.ndarray[np.floating]
        Array of size m, starting at 0, whose i-th value is the length of the polyline
        from the first point to the i-th one.
    """
    if pts.shape[1] == 0:
        return np.zeros(0, dtype="float")
    steps = np.linalg.norm(np.diff(pts, axis=1), axis=0)
    return np.concatenate(([0.0], np.cumsum(steps)))


def polyline_length(pts: np.ndarray[np.floating]) -> float:
    """Length of the polyline through the columns of `pts`, of shape (`NPh`, m)."""
    if pts.shape[1] < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(pts, axis=1), axis=0).sum())
