import enum
from abc import ABC, abstractmethod

import numpy as np
import scipy.sparse as sps
import scipy.linalg as spl

MIN_NB_PTS = 4
"""Minimum number of points for the relation between knots and control points to be defined."""

_SIDE_WEIGHT = 1.0 / 6.0
_CENTER_WEIGHT = 2.0 / 3.0


class SingularRelationError(ValueError):
    """Raised when the knot to control point relation can't be inverted."""


class Topology(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"

    @property
    def label(self) -> str:
        """Human readable name of the topology."""
        return {"open": "Open B-spline", "closed": "Closed B-spline"}[self.value]


class TopologyStrategy(ABC):
    """
    Index wrapping rule and knot/control point relation of a uniform cubic B-spline.

    One strategy exists per `Topology`. It is selected once per curve and handles
    every computation that depends on whether the point sequence has distinct ends
    (open) or loops on itself (closed).
    """

    topology: Topology

    @abstractmethod
    def resolve(self, i: int, n: int) -> int:
        """Map a logical point index `i` onto `[0, n - 1]`."""

    @abstractmethod
    def _relation_entries(self, n: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        pass

    @abstractmethod
    def _solve(self, relation: sps.csr_matrix, knot_pts: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def whole_segments(self, n: int) -> range:
        """Segment indices covering the whole curve."""

    @abstractmethod
    def segment_range(self, start: int, end: int, n: int) -> range:
        """Segment indices sampled to measure the curve from segment `start` to `end` inclusive."""

    @abstractmethod
    def walk_segments(self, n: int) -> range:
        """Segment indices in traversal order, starting at knot 0."""

    @abstractmethod
    def n_gaps(self, n: int) -> int:
        """Number of knot to knot gaps along the curve."""

    def relation_matrix(self, n: int) -> sps.csr_matrix:
        """
        Build the relation matrix mapping control points onto knot points.

        Parameters
        ----------
        n : int
            Number of points. Must be greater than 3.

        Returns
        -------
        relation : sps.csr_matrix
            Sparse matrix of shape (`n`, `n`) such that `knot = relation @ ctrl`
            (with one point per row).

        Raises
        ------
        ValueError
            If `n` is lower than `MIN_NB_PTS`.

        Examples
        --------
        >>> OpenTopology().relation_matrix(4).toarray()
        array([[1.        , 0.        , 0.        , 0.        ],
               [0.16666667, 0.66666667, 0.16666667, 0.        ],
               [0.        , 0.16666667, 0.66666667, 0.16666667],
               [0.        , 0.        , 0.        , 1.        ]])
        """
        if n < MIN_NB_PTS:
            raise ValueError(
                f"The relation needs at least {MIN_NB_PTS} points, got {n} !"
            )
        vals, row, col = self._relation_entries(n)
        return sps.coo_matrix((vals, (row, col)), shape=(n, n)).tocsr()

    def ctrl_to_knot(self, ctrl_pts: np.ndarray[np.floating]) -> np.ndarray[np.floating]:
        """
        Compute the knot points of a sequence of control points.

        Parameters
        ----------
        ctrl_pts : np.ndarray[np.floating]
            Control points of shape (`NPh`, n) with n > 3.

        Returns
        -------
        knot_pts : np.ndarray[np.floating]
            Knot points of shape (`NPh`, n).
        """
        relation = self.relation_matrix(ctrl_pts.shape[1])
        return np.asarray(relation @ ctrl_pts.T).T

    def knot_to_ctrl(self, knot_pts: np.ndarray[np.floating]) -> np.ndarray[np.floating]:
        """
        Compute the control points interpolating a sequence of knot points.

        The relation matrix is rebuilt and solved from scratch at each call, using
        a solver aware of its band structure.

        Parameters
        ----------
        knot_pts : np.ndarray[np.floating]
            Knot points of shape (`NPh`, n) with n > 3.

        Returns
        -------
        ctrl_pts : np.ndarray[np.floating]
            Control points of shape (`NPh`, n).

        Raises
        ------
        SingularRelationError
            If the relation matrix is singular.
        """
        relation = self.relation_matrix(knot_pts.shape[1])
        try:
            ctrl_pts = self._solve(relation, knot_pts.T).T
        except spl.LinAlgError as err:
            raise SingularRelationError(
                f"Can't invert the {self.topology.label} relation of {knot_pts.shape[1]} points !"
            ) from err
        return np.ascontiguousarray(ctrl_pts, dtype="float")


class OpenTopology(TopologyStrategy):
    """
    Clamped topology : indices are truncated to the ends of the sequence, and the
    first and last control points coincide with the first and last knots.
    """

    topology = Topology.OPEN

    def resolve(self, i: int, n: int) -> int:
        if i < 0:
            return 0
        if i >= n:
            return n - 1
        return i

    def _relation_entries(self, n):
        inner = np.arange(1, n - 1)
        row = np.hstack(([0, n - 1], inner, inner, inner))
        col = np.hstack(([0, n - 1], inner - 1, inner, inner + 1))
        vals = np.hstack(
            (
                [1.0, 1.0],
                np.full(inner.size, _SIDE_WEIGHT),
                np.full(inner.size, _CENTER_WEIGHT),
                np.full(inner.size, _SIDE_WEIGHT),
            )
        )
        return vals, row, col

    def _solve(self, relation, knot_pts):
        n = relation.shape[0]
        ab = np.zeros((3, n), dtype="float")
        ab[0, 1:] = relation.diagonal(1)
        ab[1] = relation.diagonal(0)
        ab[2, :-1] = relation.diagonal(-1)
        ctrl_pts = spl.solve_banded((1, 1), ab, knot_pts)
        # identity boundary rows
        ctrl_pts[0] = knot_pts[0]
        ctrl_pts[-1] = knot_pts[-1]
        return ctrl_pts

    def whole_segments(self, n):
        return range(-1, n)

    def segment_range(self, start, end, n):
        # the gaps next to both ends span two segments
        if start == 0:
            start = -1
        if end == n - 2:
            end = n - 1
        return range(start, end + 1)

    def walk_segments(self, n):
        return range(-1, n)

    def n_gaps(self, n):
        return n - 1


class ClosedTopology(TopologyStrategy):
    """
    Cyclic topology : indices wrap around modulo the number of points and every
    row of the relation follows the same circulant pattern.
    """

    topology = Topology.CLOSED

    def resolve(self, i: int, n: int) -> int:
        return i % n

    def _relation_entries(self, n):
        rows = np.arange(n)
        row = np.hstack((rows, rows, rows))
        col = np.hstack((rows, (rows + 1) % n, (rows + 2) % n))
        vals = np.hstack(
            (
                np.full(n, _SIDE_WEIGHT),
                np.full(n, _CENTER_WEIGHT),
                np.full(n, _SIDE_WEIGHT),
            )
        )
        return vals, row, col

    def _solve(self, relation, knot_pts):
        first_column = relation[:, 0].toarray().ravel()
        return spl.solve_circulant(first_column, knot_pts, singular="raise")

    def whole_segments(self, n):
        return range(0, n)

    def segment_range(self, start, end, n):
        return range(start, end + 1)

    def walk_segments(self, n):
        return range(1, n + 1)

    def n_gaps(self, n):
        return n


_STRATEGIES = {
    Topology.OPEN: OpenTopology(),
    Topology.CLOSED: ClosedTopology(),
}


def strategy_for(topology: Topology) -> TopologyStrategy:
    """Return the strategy handling `topology`."""
    return _STRATEGIES[Topology(topology)]
