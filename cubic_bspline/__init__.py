"""
.. include:: ../README.md
"""
from cubic_bspline.cubic_basis import CUBIC_BSPLINE_MATRIX, blending_weights, monomials
from cubic_bspline.topology import (Topology,
                                    TopologyStrategy,
                                    OpenTopology,
                                    ClosedTopology,
                                    SingularRelationError,
                                    strategy_for)
from cubic_bspline.cubic_b_spline import CubicBSpline, DEFAULT_LOD
from cubic_bspline.arc_length import polyline_length, cumulative_length, segment_parameters
from cubic_bspline.resampler import (ResamplerConfig,
                                     equidistant_knots,
                                     iter_equidistant,
                                     resample_equidistant)
from cubic_bspline.rasterizer import rasterize_path
