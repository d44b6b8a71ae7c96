import logging
from typing import Iterable, Iterator, Union

import numpy as np

from cubic_bspline.arc_length import polyline_length, segment_parameters
from cubic_bspline.cubic_basis import (
    _blending_weights,
    blending_weights,
    check_derivative_order,
)
from cubic_bspline.rasterizer import rasterize_path
from cubic_bspline.resampler import (
    ResamplerConfig,
    iter_equidistant,
    resample_equidistant,
)
from cubic_bspline.topology import (
    MIN_NB_PTS,
    Topology,
    TopologyStrategy,
    strategy_for,
)

logger = logging.getLogger(__name__)

DEFAULT_LOD = 200
"""Default number of samples per segment."""


def _inserted(pts, idx, pt):
    n = pts.shape[1]
    idx = min(max(idx, 0), n)
    return np.insert(pts, idx, pt, axis=1)


class CubicBSpline:
    """
    Uniform cubic B-spline curve kept in sync between its knot points and its control points.

    Knot points are the points the curve goes through, control points are the points
    blended by the cubic basis. Both sequences are linked by a fixed linear relation that
    only depends on the topology and on the number of points : every mutation of one of
    them recomputes the other one before returning.

    Attributes
    ----------
    NPh : int
        Dimension of the physical space, fixed at construction.

    Notes
    -----
    - Points are stored as arrays of shape (`NPh`, n), one column per point.
    - The curve is ready (can be evaluated) once it holds at least 4 points. Below that,
      queries return zero valued results and the complementary sequence is empty.
    - Segment `i` blends the control points `i - 1` to `i + 2`, whose indices are
      resolved by the topology : clamped for an open curve, wrapped for a closed one.
    - The object isn't thread safe : concurrent use needs an external lock.

    See Also
    --------
    `Topology` : Open or closed point sequence
    `ResamplerConfig` : Tolerances of the equidistant resampling
    """

    NPh: int

    def __init__(
        self,
        NPh: int = 2,
        topology: Topology = Topology.OPEN,
        lod: int = DEFAULT_LOD,
    ):
        """
        Create an empty curve.

        Parameters
        ----------
        NPh : int, optional
            Dimension of the physical space (2 or 3 typically). By default, 2.
        topology : Topology, optional
            Open or closed curve. By default, `Topology.OPEN`.
        lod : int, optional
            Level of detail : number of samples per segment used to measure,
            resample and rasterize the curve. By default, `DEFAULT_LOD`.

        Examples
        --------
        >>> spline = CubicBSpline(2, Topology.CLOSED, lod=50)
        >>> spline.is_ready()
        False
        """
        if NPh < 1:
            raise ValueError(f"The physical dimension must be positive, got {NPh} !")
        self.NPh = int(NPh)
        self._topology = Topology(topology)
        self._strategy = strategy_for(self._topology)
        self.lod = lod
        self._knot_pts = np.empty((self.NPh, 0), dtype="float")
        self._ctrl_pts = np.empty((self.NPh, 0), dtype="float")

    # %% state

    @property
    def topology(self) -> Topology:
        """Topology of the curve. Setting it recomputes the control points from the knots."""
        return self._topology

    @topology.setter
    def topology(self, topology: Topology):
        self._topology = Topology(topology)
        self._strategy = strategy_for(self._topology)
        if self.is_ready():
            self._knot_to_ctrl()

    @property
    def topology_label(self) -> str:
        return self._topology.label

    @property
    def strategy(self) -> TopologyStrategy:
        return self._strategy

    @property
    def lod(self) -> int:
        """Number of samples per segment."""
        return self._lod

    @lod.setter
    def lod(self, lod: int):
        if int(lod) != lod or lod < 2:
            raise ValueError(f"The level of detail must be an integer >= 2, got {lod} !")
        self._lod = int(lod)

    @property
    def knot_pts(self) -> np.ndarray[np.floating]:
        """Read-only view of the knot points, of shape (`NPh`, n)."""
        view = self._knot_pts.view()
        view.flags.writeable = False
        return view

    @property
    def ctrl_pts(self) -> np.ndarray[np.floating]:
        """Read-only view of the control points, of shape (`NPh`, n)."""
        view = self._ctrl_pts.view()
        view.flags.writeable = False
        return view

    def get_nb_knot_pts(self) -> int:
        return self._knot_pts.shape[1]

    def get_nb_ctrl_pts(self) -> int:
        return self._ctrl_pts.shape[1]

    def is_ready(self) -> bool:
        """Whether both sequences hold enough points for the curve to be evaluated."""
        return (
            self.get_nb_knot_pts() >= MIN_NB_PTS
            and self.get_nb_ctrl_pts() >= MIN_NB_PTS
        )

    def clear(self):
        """Remove every point. The topology and the level of detail are kept."""
        self._knot_pts = np.empty((self.NPh, 0), dtype="float")
        self._ctrl_pts = np.empty((self.NPh, 0), dtype="float")

    def resolve(self, i: int) -> int:
        """
        Resolve a logical point index into a valid control point index.

        Out of range indices are clamped for an open curve and wrapped for a closed one.

        Examples
        --------
        >>> spline = CubicBSpline(2, Topology.CLOSED)
        >>> spline.set_knot_pts(np.random.rand(2, 5))
        >>> spline.resolve(-1), spline.resolve(5)
        (4, 0)
        """
        return self._strategy.resolve(i, self.get_nb_ctrl_pts())

    def get_knot_pt(self, i: int) -> np.ndarray[np.floating]:
        return self._pt_of(self._knot_pts, i).copy()

    def get_ctrl_pt(self, i: int) -> np.ndarray[np.floating]:
        return self._pt_of(self._ctrl_pts, i).copy()

    def get_knot_first_pt(self) -> np.ndarray[np.floating]:
        return self._pt_of(self._knot_pts, 0).copy()

    def get_knot_last_pt(self) -> np.ndarray[np.floating]:
        return self._pt_of(self._knot_pts, -1).copy()

    def get_ctrl_first_pt(self) -> np.ndarray[np.floating]:
        return self._pt_of(self._ctrl_pts, 0).copy()

    def get_ctrl_last_pt(self) -> np.ndarray[np.floating]:
        return self._pt_of(self._ctrl_pts, -1).copy()

    # %% knot points mutation

    def add_knot_pt(self, pt: Iterable[float]):
        """
        Append a knot point and recompute the control points.

        While the knots are fewer than 4, the control points are left empty : any
        control point held before is discarded.
        """
        self._set_knots(_inserted(self._knot_pts, self.get_nb_knot_pts(), self._check_pt(pt)))

    def prepend_knot_pt(self, pt: Iterable[float]):
        """Insert a knot point in front of the others and recompute the control points."""
        self._set_knots(_inserted(self._knot_pts, 0, self._check_pt(pt)))

    def insert_knot_pt(self, idx: int, pt: Iterable[float]):
        """
        Insert a knot point before index `idx` and recompute the control points.

        A negative `idx` inserts at the front, an `idx` greater or equal to the number
        of knots inserts at the back.
        """
        self._set_knots(_inserted(self._knot_pts, idx, self._check_pt(pt)))

    def remove_knot_first_pt(self):
        self.remove_knot_pt(0)

    def remove_knot_last_pt(self):
        self.remove_knot_pt(self.get_nb_knot_pts() - 1)

    def remove_knot_pt(self, idx: int):
        """Remove the knot point at the resolved index `idx` and recompute the control points."""
        self._set_knots(np.delete(self._knot_pts, self._index_of(self._knot_pts, idx), axis=1))

    def set_knot_pt(self, idx: int, pt: Iterable[float]):
        """Move the knot point at the resolved index `idx` and recompute the control points."""
        knot_pts = self._knot_pts.copy()
        knot_pts[:, self._index_of(knot_pts, idx)] = self._check_pt(pt)
        self._set_knots(knot_pts)

    def set_knot_pts(self, pts: np.ndarray[np.floating]):
        """
        Replace every knot point and recompute the control points.

        Parameters
        ----------
        pts : np.ndarray[np.floating]
            New knot points of shape (`NPh`, n).
        """
        self._set_knots(self._check_pts(pts))

    # %% control points mutation

    def add_ctrl_pt(self, pt: Iterable[float]):
        """
        Append a control point and recompute the knot points.

        While the control points are fewer than 4, the knots are left empty : knots
        added beforehand are discarded.
        """
        self._set_ctrls(_inserted(self._ctrl_pts, self.get_nb_ctrl_pts(), self._check_pt(pt)))

    def prepend_ctrl_pt(self, pt: Iterable[float]):
        self._set_ctrls(_inserted(self._ctrl_pts, 0, self._check_pt(pt)))

    def insert_ctrl_pt(self, idx: int, pt: Iterable[float]):
        """Insert a control point before index `idx`, see `insert_knot_pt`."""
        self._set_ctrls(_inserted(self._ctrl_pts, idx, self._check_pt(pt)))

    def remove_ctrl_first_pt(self):
        self.remove_ctrl_pt(0)

    def remove_ctrl_last_pt(self):
        self.remove_ctrl_pt(self.get_nb_ctrl_pts() - 1)

    def remove_ctrl_pt(self, idx: int):
        self._set_ctrls(np.delete(self._ctrl_pts, self._index_of(self._ctrl_pts, idx), axis=1))

    def set_ctrl_pt(self, idx: int, pt: Iterable[float]):
        ctrl_pts = self._ctrl_pts.copy()
        ctrl_pts[:, self._index_of(ctrl_pts, idx)] = self._check_pt(pt)
        self._set_ctrls(ctrl_pts)

    def set_ctrl_pts(self, pts: np.ndarray[np.floating]):
        """
        Replace every control point and recompute the knot points.

        Parameters
        ----------
        pts : np.ndarray[np.floating]
            New control points of shape (`NPh`, n).
        """
        self._set_ctrls(self._check_pts(pts))

    # %% evaluation

    def _segment_indices(self, idx):
        return [self.resolve(i) for i in range(idx - 1, idx + 3)]

    def evaluate(self, idx: int, t: float, k: int = 0) -> np.ndarray[np.floating]:
        """
        Evaluate the `k`-th derivative of the curve on segment `idx` at parameter `t`.

        Parameters
        ----------
        idx : int
            Segment index. Resolved with the topology rule, it may be negative or
            greater than the number of points.
        t : float
            Normalized parameter in [0, 1].
        k : int, optional
            Derivative order, in `{0, 1, 2, 3}`. By default, 0.

        Returns
        -------
        pt : np.ndarray[np.floating]
            Point (or derivative vector) of shape (`NPh`,). The zero vector is returned
            if the curve isn't ready or if `t` is outside [0, 1] (the latter is logged).

        Raises
        ------
        ValueError
            If `k` isn't a valid derivative order.

        Examples
        --------
        >>> spline = CubicBSpline(2)
        >>> spline.set_ctrl_pts(np.array([[0., 1., 1., 0.], [0., 0., 1., 1.]]))
        >>> spline.evaluate(1, 0.)
        array([0.83333333, 0.16666667])
        """
        check_derivative_order(k)
        if not self.is_ready():
            return np.zeros(self.NPh, dtype="float")
        if not 0 <= t <= 1:
            logger.error("Parameter t=%g of segment %d is not normalized to [0, 1]", t, idx)
            return np.zeros(self.NPh, dtype="float")
        B = _blending_weights(float(t), k)
        return self._ctrl_pts[:, self._segment_indices(idx)] @ B

    def evaluate_segment(
        self, idx: int, t_values: Union[Iterable[float], np.ndarray[np.floating]], k: int = 0
    ) -> np.ndarray[np.floating]:
        """
        Evaluate the `k`-th derivative of the curve on segment `idx` at several parameters.

        Parameters
        ----------
        idx : int
            Segment index, resolved with the topology rule.
        t_values : Union[Iterable[float], np.ndarray[np.floating]]
            Normalized parameters in [0, 1].
        k : int, optional
            Derivative order. By default, 0.

        Returns
        -------
        pts : np.ndarray[np.floating]
            Array of shape (`NPh`, m). Zeros if the curve isn't ready or if a parameter
            is outside [0, 1] (the latter is logged).
        """
        check_derivative_order(k)
        t_values = np.asarray(t_values, dtype="float").ravel()
        if not self.is_ready():
            return np.zeros((self.NPh, t_values.size), dtype="float")
        if np.any(t_values < 0) or np.any(t_values > 1):
            logger.error("Parameters of segment %d are not normalized to [0, 1]", idx)
            return np.zeros((self.NPh, t_values.size), dtype="float")
        B = blending_weights(t_values, k)
        return self._ctrl_pts[:, self._segment_indices(idx)] @ B.T

    def sample(self, k: int = 0) -> np.ndarray[np.floating]:
        """
        Sample the `k`-th derivative of the whole curve with `lod` parameters per segment.

        Returns
        -------
        pts : np.ndarray[np.floating]
            Samples of shape (`NPh`, m), segment after segment. Empty if the curve
            isn't ready.
        """
        if not self.is_ready():
            return np.empty((self.NPh, 0), dtype="float")
        ts = segment_parameters(self._lod)
        n = self.get_nb_ctrl_pts()
        return np.hstack(
            [self.evaluate_segment(seg, ts, k) for seg in self._strategy.whole_segments(n)]
        )

    # %% arc length

    def length(self, start: Union[int, None] = None, end: Union[int, None] = None) -> float:
        """
        Measure the arc length of the curve, or of the segments `start` to `end` inclusive.

        Each segment is sampled at `lod` parameters and the length of the resulting
        polyline is accumulated. For an open curve, a range starting at the first knot
        also covers the leading segment ending on the second one, and a range ending
        on segment `n - 2` also covers the trailing segment ending on the last knot, so
        that `length(i, i)` is the arc length between knots `i` and `i + 1`.

        Parameters
        ----------
        start : Union[int, None], optional
            First segment. If `None`, 0. By default, None.
        end : Union[int, None], optional
            Last segment. If `None`, the last point index. By default, None.

        Returns
        -------
        length : float
            Arc length. 0 if the curve isn't ready or if the range isn't valid
            (the latter is logged).

        Examples
        --------
        >>> spline = CubicBSpline(2)
        >>> spline.set_knot_pts(np.array([[0., 1., 2., 3.], [0., 0., 0., 0.]]))
        >>> round(spline.length(), 6)
        3.0
        """
        if not self.is_ready():
            return 0.0
        n = self.get_nb_knot_pts()
        if start is None and end is None:
            segments = self._strategy.whole_segments(n)
        else:
            start = 0 if start is None else start
            end = n - 1 if end is None else end
            if not 0 <= start <= end <= n - 1:
                logger.error("Segment range [%d, %d] is out of [0, %d]", start, end, n - 1)
                return 0.0
            segments = self._strategy.segment_range(start, end, n)
        ts = segment_parameters(self._lod)
        return sum(polyline_length(self.evaluate_segment(seg, ts)) for seg in segments)

    def average_segment_length(self) -> float:
        """
        Arc length of the whole curve divided by the number of knot to knot gaps.

        An open curve of n knots has `n - 1` gaps, a closed one has `n` gaps since its
        last knot connects back to the first one.
        """
        if not self.is_ready():
            return 0.0
        return self.length() / self._strategy.n_gaps(self.get_nb_knot_pts())

    # %% resampling and rasterization

    def resample(self, config: Union[ResamplerConfig, None] = None) -> bool:
        """
        Move the knots along the curve until they are separated by equal arc lengths.

        See `resample_equidistant`.

        Returns
        -------
        converged : bool
            `False` if the curve isn't ready or if the iteration didn't converge within
            `config.max_iterations` passes.
        """
        return resample_equidistant(self, config)

    def iter_resample(self, config: Union[ResamplerConfig, None] = None) -> Iterator[float]:
        """Steppable form of `resample`, yielding the knot change of each pass."""
        return iter_equidistant(self, config)

    def rasterize(self) -> np.ndarray[np.integer]:
        """
        Convert the curve into a connected path of integer lattice points.

        Returns
        -------
        path : np.ndarray[np.integer]
            Lattice points of shape (2, p). Empty if the curve isn't ready.

        Raises
        ------
        ValueError
            If the curve isn't planar (`NPh != 2`).
        """
        if self.NPh != 2:
            raise ValueError(f"Can only rasterize a 2D curve, got NPh={self.NPh} !")
        if not self.is_ready():
            return np.empty((2, 0), dtype=np.int64)
        return rasterize_path(self.sample())

    def plotMPL(
        self,
        ax=None,
        knot_color: str = '#d95f02',
        ctrl_color: str = '#1b9e77',
        curve_color: str = '#7570b3',
    ):
        """
        Plot the curve, its knot points and its control polygon using Matplotlib.

        Parameters
        ----------
        ax : Union[mpl.axes.Axes, None], optional
            Matplotlib axes for plotting. If None, creates a new figure and axes.
            Must be a 3D axes for a 3D curve. By default, None.
        knot_color : str, optional
            Color of the knot points. Default is '#d95f02' (orange).
        ctrl_color : str, optional
            Color of the control polygon. Default is '#1b9e77' (green).
        curve_color : str, optional
            Color of the curve. Default is '#7570b3' (purple).

        Returns
        -------
        ax : mpl.axes.Axes
            The axes drawn on.
        """
        import matplotlib.pyplot as plt
        if self.NPh not in (2, 3):
            raise ValueError(f"Can't plot in a {self.NPh}D space.")
        if ax is None:
            fig = plt.figure()
            ax = fig.add_subplot(projection='3d') if self.NPh == 3 else fig.add_subplot()
        ctrl_pts = self._ctrl_pts
        if self._topology is Topology.CLOSED and ctrl_pts.shape[1] > 0:
            ctrl_pts = np.hstack((ctrl_pts, ctrl_pts[:, :1]))
        ax.plot(*ctrl_pts, marker="o", c=ctrl_color, label="Control polygon", zorder=0)
        ax.plot(*self.sample(), c=curve_color, label=self.topology_label, zorder=1)
        ax.scatter(*self._knot_pts, marker='*', c=knot_color, label="Knot points", zorder=2)
        ax.legend()
        if self.NPh == 2:
            ax.set_aspect(1)
        return ax

    # %% internals

    def _check_pt(self, pt):
        pt = np.asarray(pt, dtype="float")
        if pt.shape != (self.NPh,):
            raise ValueError(f"Point shape {pt.shape} not understood, expected ({self.NPh},).")
        return pt

    def _check_pts(self, pts):
        pts = np.array(pts, dtype="float")
        if pts.ndim != 2 or pts.shape[0] != self.NPh:
            raise ValueError(f"Points shape {pts.shape} not understood, expected ({self.NPh}, n).")
        return pts

    def _index_of(self, pts, idx):
        n = pts.shape[1]
        if n == 0:
            raise IndexError("Can't access a point of an empty sequence !")
        return self._strategy.resolve(idx, n)

    def _pt_of(self, pts, idx):
        return pts[:, self._index_of(pts, idx)]

    def _set_knots(self, knot_pts):
        self._knot_pts = knot_pts
        self._knot_to_ctrl()

    def _set_ctrls(self, ctrl_pts):
        self._ctrl_pts = ctrl_pts
        self._ctrl_to_knot()

    def _knot_to_ctrl(self):
        if self.get_nb_knot_pts() < MIN_NB_PTS:
            self._ctrl_pts = np.empty((self.NPh, 0), dtype="float")
            return
        self._ctrl_pts = self._strategy.knot_to_ctrl(self._knot_pts)
        logger.debug("Control points recomputed from %d knots", self.get_nb_knot_pts())

    def _ctrl_to_knot(self):
        if self.get_nb_ctrl_pts() < MIN_NB_PTS:
            self._knot_pts = np.empty((self.NPh, 0), dtype="float")
            return
        self._knot_pts = self._strategy.ctrl_to_knot(self._ctrl_pts)
        logger.debug("Knot points recomputed from %d control points", self.get_nb_ctrl_pts())
