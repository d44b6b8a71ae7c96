import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Union

import numpy as np

from cubic_bspline.arc_length import cumulative_length, segment_parameters

if TYPE_CHECKING:
    from cubic_bspline.cubic_b_spline import CubicBSpline

logger = logging.getLogger(__name__)


@dataclass
class ResamplerConfig:
    """Tolerances of the equidistant resampling."""

    length_tolerance: float = 0.1  # slack on the arc length target, in length units
    min_local_t: float = 0.01  # below this local parameter the existing knot is kept
    convergence_tolerance: float = 0.1  # norm of the knot change ending the iteration
    max_iterations: int = 100

    def validate(self) -> None:
        if self.length_tolerance < 0:
            raise ValueError("length_tolerance must be non negative")
        if not 0 <= self.min_local_t < 1:
            raise ValueError("min_local_t must lie in [0, 1)")
        if self.convergence_tolerance <= 0:
            raise ValueError("convergence_tolerance must be positive")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")


def equidistant_knots(
    spline: "CubicBSpline", config: Union[ResamplerConfig, None] = None
) -> np.ndarray[np.floating]:
    """
    Compute one pass of equidistant knot positions along the current curve.

    The curve is walked from knot 0, sampling `spline.lod` parameters per segment and
    accumulating the arc length. Each multiple `k * avg` of the average segment length
    is detected in the first sample interval whose end overshoots it by more than
    `config.length_tolerance`, and the parameter of the target is found by linear
    interpolation (extrapolating backwards when the interval starts past the target).
    If this parameter is below `config.min_local_t`, the target sits at the start of
    the segment and the existing knot `k` is kept, otherwise the curve is evaluated
    there. Knot 0 (and the last knot of an open curve) is kept as is.

    Parameters
    ----------
    spline : CubicBSpline
        Ready curve whose knots are resampled. It isn't modified.
    config : Union[ResamplerConfig, None], optional
        Tolerances. If `None`, the defaults are used. By default, None.

    Returns
    -------
    knot_pts : np.ndarray[np.floating]
        New knot points of shape (`NPh`, n).
    """
    if config is None:
        config = ResamplerConfig()
    strategy = spline.strategy
    old_knot_pts = np.array(spline.knot_pts)
    n = old_knot_pts.shape[1]
    avg = spline.average_segment_length()
    ts = segment_parameters(spline.lod)

    seg_ids, t_start, t_end, len_start, len_end = [], [], [], [], []
    offset = 0.0
    for seg in strategy.walk_segments(n):
        cum = cumulative_length(spline.evaluate_segment(seg, ts)) + offset
        seg_ids.append(np.full(ts.size - 1, seg, dtype="int"))
        t_start.append(ts[:-1])
        t_end.append(ts[1:])
        len_start.append(cum[:-1])
        len_end.append(cum[1:])
        offset = cum[-1]
    seg_ids = np.concatenate(seg_ids)
    t_start = np.concatenate(t_start)
    t_end = np.concatenate(t_end)
    len_start = np.concatenate(len_start)
    len_end = np.concatenate(len_end)

    new_knot_pts = old_knot_pts.copy()
    for k in range(1, strategy.n_gaps(n)):
        target = k * avg
        # first sample interval overshooting the target by more than the tolerance
        j = np.searchsorted(len_end, target + config.length_tolerance, side="right")
        j = min(j, len_end.size - 1)
        span = len_end[j] - len_start[j]
        frac = 0.0 if span <= 0 else (target - len_start[j]) / span
        t = min(t_start[j] + frac * (t_end[j] - t_start[j]), 1.0)
        if t < config.min_local_t:
            continue
        new_knot_pts[:, k] = spline.evaluate(int(seg_ids[j]), t)
    return new_knot_pts


def iter_equidistant(
    spline: "CubicBSpline", config: Union[ResamplerConfig, None] = None
) -> Iterator[float]:
    """
    Repeatedly replace the knots of `spline` by equidistant ones.

    Each step runs one pass of `equidistant_knots`, writes the result back into the
    curve (which recomputes its control points) and yields the norm of the change of
    the knot sequence. The generator never stops by itself on a ready curve : the
    caller decides when to stop iterating.

    Parameters
    ----------
    spline : CubicBSpline
        Curve to modify in place.
    config : Union[ResamplerConfig, None], optional
        Tolerances. By default, None.

    Yields
    ------
    delta : float
        Euclidean norm of the difference between the new and the previous knots.
    """
    if config is None:
        config = ResamplerConfig()
    config.validate()
    while spline.is_ready():
        old_knot_pts = np.array(spline.knot_pts)
        new_knot_pts = equidistant_knots(spline, config)
        spline.set_knot_pts(new_knot_pts)
        delta = float(np.linalg.norm(new_knot_pts - old_knot_pts))
        logger.debug("Equidistant pass moved the knots by %g", delta)
        yield delta


def resample_equidistant(
    spline: "CubicBSpline", config: Union[ResamplerConfig, None] = None
) -> bool:
    """
    Move the knots of `spline` until they are separated by equal arc lengths.

    Iterates `iter_equidistant` until the knot change drops below
    `config.convergence_tolerance` or `config.max_iterations` passes were run.

    Parameters
    ----------
    spline : CubicBSpline
        Curve to modify in place.
    config : Union[ResamplerConfig, None], optional
        Tolerances. By default, None.

    Returns
    -------
    converged : bool
        `True` if the iteration converged, `False` if it gave up or if the curve
        isn't ready.
    """
    if config is None:
        config = ResamplerConfig()
    if not spline.is_ready():
        logger.debug("Can't resample a curve that isn't ready")
        return False
    for iteration, delta in enumerate(iter_equidistant(spline, config), start=1):
        if delta < config.convergence_tolerance:
            logger.debug("Equidistant resampling converged in %d passes", iteration)
            return True
        if iteration >= config.max_iterations:
            break
    logger.warning(
        "Equidistant resampling did not converge after %d passes (last change %g)",
        config.max_iterations,
        delta,
    )
    return False
