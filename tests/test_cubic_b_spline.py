import logging

import numpy as np
import pytest
from cubic_bspline import CubicBSpline, DEFAULT_LOD, Topology


@pytest.fixture
def square():
    # corners of the unit square used as control points
    spline = CubicBSpline(2, lod=4)
    spline.set_ctrl_pts(np.array([[0., 1., 1., 0.], [0., 0., 1., 1.]]))
    return spline

@pytest.fixture
def knots_2d():
    return np.array([[10., 40., 90., 150., 200., 260.],
                     [10., 80., 20., 60., 15., 40.]])

@pytest.fixture(params=[Topology.OPEN, Topology.CLOSED])
def spline(request, knots_2d):
    spline = CubicBSpline(2, request.param, lod=50)
    spline.set_knot_pts(knots_2d)
    return spline

def test___init__():
    spline = CubicBSpline()
    assert (    spline.NPh==2
            and spline.topology is Topology.OPEN
            and spline.lod==DEFAULT_LOD
            and spline.knot_pts.shape==(2, 0)
            and spline.ctrl_pts.shape==(2, 0)
            and not spline.is_ready())
    with pytest.raises(ValueError):
        CubicBSpline(0)

def test_lod():
    spline = CubicBSpline(3, lod=10)
    assert spline.lod == 10
    spline.lod = 25
    assert spline.lod == 25
    for lod in (0, 1, 2.5, -4):
        with pytest.raises(ValueError):
            spline.lod = lod

def test_topology_label():
    spline = CubicBSpline()
    assert spline.topology_label == "Open B-spline"
    spline.topology = Topology.CLOSED
    assert spline.topology_label == "Closed B-spline"

def test_not_ready_returns_zero():
    spline = CubicBSpline(3)
    for i in range(4):
        for t in (0., 0.5, 1., 2.):
            np.testing.assert_array_equal(spline.evaluate(0, t), np.zeros(3))
            np.testing.assert_array_equal(spline.evaluate(i, t, k=2), np.zeros(3))
        assert spline.evaluate_segment(0, [0., 0.5]).shape == (3, 2)
        assert spline.sample().shape == (3, 0)
        assert spline.length() == 0.
        assert spline.average_segment_length() == 0.
        assert not spline.is_ready()
        spline.add_knot_pt([i, i**2, 1.])
    assert spline.is_ready()

def test_complementary_sequence_below_four_points():
    spline = CubicBSpline()
    for pt in ([0, 0], [1, 0], [2, 1]):
        spline.add_knot_pt(pt)
        assert spline.get_nb_ctrl_pts() == 0
    spline.add_knot_pt([3, 0])
    assert spline.get_nb_knot_pts() == spline.get_nb_ctrl_pts() == 4
    spline.remove_knot_last_pt()
    assert spline.get_nb_knot_pts() == 3
    assert spline.get_nb_ctrl_pts() == 0

def test_mixing_sequences_below_four_points():
    spline = CubicBSpline()
    for pt in ([0, 0], [1, 0], [2, 1]):
        spline.add_knot_pt(pt)
    spline.add_ctrl_pt([5, 5])
    assert spline.get_nb_ctrl_pts() == 1
    assert spline.get_nb_knot_pts() == 0
    np.testing.assert_array_equal(spline.get_ctrl_first_pt(), [5, 5])

def test_duality(spline, knots_2d):
    assert spline.get_nb_knot_pts() == spline.get_nb_ctrl_pts() == knots_2d.shape[1]
    np.testing.assert_array_equal(spline.knot_pts, knots_2d)
    R = spline.strategy.relation_matrix(knots_2d.shape[1])
    np.testing.assert_allclose(R @ spline.ctrl_pts.T, knots_2d.T, atol=1e-9)

def test_duality_from_ctrl_pts(spline):
    ctrl_pts = np.array(spline.ctrl_pts)
    ctrl_pts[:, 2] += [5., -3.]
    spline.set_ctrl_pts(ctrl_pts)
    np.testing.assert_array_equal(spline.ctrl_pts, ctrl_pts)
    other = CubicBSpline(2, spline.topology)
    other.set_knot_pts(spline.knot_pts)
    np.testing.assert_allclose(other.ctrl_pts, ctrl_pts, atol=1e-9)

def test_open_boundary_clamping():
    spline = CubicBSpline(2)
    for pt in ([3., 7.], [12., -1.], [25., 4.], [31., 16.], [40., 2.]):
        spline.add_ctrl_pt(pt)
    np.testing.assert_array_equal(spline.get_knot_first_pt(), spline.get_ctrl_first_pt())
    np.testing.assert_array_equal(spline.get_knot_last_pt(), spline.get_ctrl_last_pt())
    spline.add_knot_pt([55., 9.])
    np.testing.assert_array_equal(spline.get_knot_first_pt(), spline.get_ctrl_first_pt())
    np.testing.assert_array_equal(spline.get_ctrl_last_pt(), [55., 9.])

def test_square_scenario(square):
    np.testing.assert_allclose(square.knot_pts, [[0., 5/6, 5/6, 0.], [0., 1/6, 5/6, 1.]])
    np.testing.assert_allclose(square.evaluate(1, 0.), square.knot_pts[:, 1])
    np.testing.assert_allclose(square.evaluate(1, 1.), square.knot_pts[:, 2])
    length = square.length()
    assert 0 < length < 4
    assert np.isfinite(length)

def test_curve_goes_through_knots(spline):
    n = spline.get_nb_knot_pts()
    if spline.topology is Topology.OPEN:
        np.testing.assert_allclose(spline.evaluate(-1, 0.), spline.knot_pts[:, 0])
        np.testing.assert_allclose(spline.evaluate(n - 1, 1.), spline.knot_pts[:, -1])
        for i in range(1, n - 1):
            np.testing.assert_allclose(spline.evaluate(i, 0.), spline.knot_pts[:, i])
    else:
        for i in range(n + 2):
            np.testing.assert_allclose(spline.evaluate(i, 0.), spline.knot_pts[:, spline.resolve(i - 1)])

def test_continuity(spline):
    n = spline.get_nb_knot_pts()
    for i in range(n - 2):
        for k in range(3):
            np.testing.assert_allclose(spline.evaluate(i, 1., k), spline.evaluate(i + 1, 0., k), atol=1e-9)

def test_derivatives(spline):
    h = 1e-6
    for t in (0.2, 0.5, 0.8):
        for k in range(3):
            fd = (spline.evaluate(2, t + h, k) - spline.evaluate(2, t - h, k))/(2*h)
            np.testing.assert_allclose(fd, spline.evaluate(2, t, k + 1), rtol=1e-4, atol=1e-4)
    np.testing.assert_allclose(spline.evaluate(2, 0.1, 3), spline.evaluate(2, 0.9, 3))

def test_evaluate_segment_matches_evaluate(spline):
    ts = np.linspace(0, 1, 7)
    for k in range(4):
        pts = spline.evaluate_segment(1, ts, k)
        assert pts.shape == (2, ts.size)
        for i, t in enumerate(ts):
            np.testing.assert_allclose(pts[:, i], spline.evaluate(1, t, k), atol=1e-9)

def test_parameter_out_of_range(spline, caplog):
    with caplog.at_level(logging.ERROR, logger="cubic_bspline"):
        np.testing.assert_array_equal(spline.evaluate(1, 1.5), np.zeros(2))
        np.testing.assert_array_equal(spline.evaluate(1, -0.2, 1), np.zeros(2))
        np.testing.assert_array_equal(spline.evaluate_segment(1, [0.5, 2.]), np.zeros((2, 2)))
    assert len(caplog.records) == 3

def test_invalid_derivative_order(spline):
    with pytest.raises(ValueError):
        spline.evaluate(0, 0.5, 4)
    with pytest.raises(ValueError):
        spline.evaluate_segment(0, [0.5], -1)

def test_3d_curve():
    spline = CubicBSpline(3)
    angles = np.linspace(0, 3*np.pi, 8)
    spline.set_knot_pts(np.array([np.cos(angles), np.sin(angles), angles/np.pi]))
    assert spline.evaluate(2, 0.5).shape == (3,)
    assert spline.sample().shape == (3, 9*spline.lod)
    np.testing.assert_allclose(spline.evaluate(3, 0.), spline.knot_pts[:, 3], atol=1e-12)

def test_insert_knot_pt(spline, knots_2d):
    n = knots_2d.shape[1]
    spline.insert_knot_pt(-5, [0., 0.])
    np.testing.assert_array_equal(spline.get_knot_first_pt(), [0., 0.])
    spline.insert_knot_pt(100, [300., 0.])
    np.testing.assert_array_equal(spline.get_knot_last_pt(), [300., 0.])
    spline.insert_knot_pt(3, [70., 70.])
    np.testing.assert_array_equal(spline.get_knot_pt(3), [70., 70.])
    assert spline.get_nb_knot_pts() == spline.get_nb_ctrl_pts() == n + 3
    np.testing.assert_allclose(spline.strategy.ctrl_to_knot(np.array(spline.ctrl_pts)), spline.knot_pts, atol=1e-9)

def test_prepend_and_remove(spline, knots_2d):
    spline.prepend_knot_pt([-10., -10.])
    np.testing.assert_array_equal(spline.knot_pts[:, 1:], knots_2d)
    spline.remove_knot_first_pt()
    np.testing.assert_array_equal(spline.knot_pts, knots_2d)
    spline.remove_knot_last_pt()
    np.testing.assert_array_equal(spline.knot_pts, knots_2d[:, :-1])
    spline.remove_knot_pt(2)
    np.testing.assert_array_equal(spline.knot_pts, np.delete(knots_2d[:, :-1], 2, axis=1))
    assert spline.get_nb_ctrl_pts() == 4

def test_remove_resolved_index():
    spline = CubicBSpline(2, Topology.CLOSED)
    knots = np.arange(12, dtype='float').reshape((2, 6))
    spline.set_knot_pts(knots)
    spline.remove_knot_pt(-1)
    np.testing.assert_array_equal(spline.knot_pts, knots[:, :-1])
    spline.topology = Topology.OPEN
    spline.remove_knot_pt(42)
    np.testing.assert_array_equal(spline.knot_pts, knots[:, :-2])

def test_set_pt(spline):
    spline.set_knot_pt(2, [100., 100.])
    np.testing.assert_array_equal(spline.get_knot_pt(2), [100., 100.])
    spline.set_ctrl_pt(3, [-5., 5.])
    np.testing.assert_array_equal(spline.get_ctrl_pt(3), [-5., 5.])
    np.testing.assert_allclose(spline.strategy.ctrl_to_knot(np.array(spline.ctrl_pts)), spline.knot_pts)

def test_ctrl_pt_mutations():
    spline = CubicBSpline(2)
    for pt in ([0., 0.], [1., 2.], [3., 3.], [4., 0.]):
        spline.add_ctrl_pt(pt)
    spline.prepend_ctrl_pt([-1., 1.])
    spline.insert_ctrl_pt(2, [0.5, 5.])
    np.testing.assert_array_equal(spline.ctrl_pts, [[-1., 0., 0.5, 1., 3., 4.], [1., 0., 5., 2., 3., 0.]])
    spline.remove_ctrl_first_pt()
    spline.remove_ctrl_last_pt()
    spline.remove_ctrl_pt(1)
    assert spline.get_nb_ctrl_pts() == 3
    assert spline.get_nb_knot_pts() == 0

def test_empty_sequence_errors():
    spline = CubicBSpline()
    with pytest.raises(IndexError):
        spline.remove_knot_last_pt()
    with pytest.raises(IndexError):
        spline.set_ctrl_pt(0, [1., 1.])
    with pytest.raises(IndexError):
        spline.get_knot_first_pt()

def test_wrong_shapes(spline):
    with pytest.raises(ValueError):
        spline.add_knot_pt([1., 2., 3.])
    with pytest.raises(ValueError):
        spline.set_ctrl_pt(0, [[1., 2.]])
    with pytest.raises(ValueError):
        spline.set_knot_pts(np.zeros((3, 5)))

def test_read_only_views(spline):
    with pytest.raises(ValueError):
        spline.knot_pts[0, 0] = 1.
    with pytest.raises(ValueError):
        spline.ctrl_pts[:, 1] = 0.

def test_bulk_replace_copies(knots_2d):
    spline = CubicBSpline()
    spline.set_knot_pts(knots_2d)
    knots_2d[0, 0] = -999.
    assert spline.knot_pts[0, 0] == 10.

def test_topology_change_recomputes_ctrl_pts(knots_2d):
    spline = CubicBSpline(2, Topology.OPEN)
    spline.set_knot_pts(knots_2d)
    open_ctrl_pts = np.array(spline.ctrl_pts)
    spline.topology = Topology.CLOSED
    np.testing.assert_array_equal(spline.knot_pts, knots_2d)
    assert not np.allclose(spline.ctrl_pts, open_ctrl_pts)
    closed = CubicBSpline(2, Topology.CLOSED)
    closed.set_knot_pts(knots_2d)
    np.testing.assert_allclose(spline.ctrl_pts, closed.ctrl_pts)

def test_resolve():
    spline = CubicBSpline(2, Topology.CLOSED)
    spline.set_knot_pts(np.random.rand(2, 5))
    assert (spline.resolve(-1), spline.resolve(5)) == (4, 0)
    spline.topology = Topology.OPEN
    assert (spline.resolve(-1), spline.resolve(5)) == (0, 4)

def test_clear(spline):
    topology = spline.topology
    spline.clear()
    assert spline.get_nb_knot_pts() == spline.get_nb_ctrl_pts() == 0
    assert not spline.is_ready()
    assert spline.topology is topology
    assert spline.lod == 50

def test_sample(spline):
    n = spline.get_nb_knot_pts()
    nb_segments = n + 1 if spline.topology is Topology.OPEN else n
    samples = spline.sample()
    assert samples.shape == (2, nb_segments*spline.lod)
    np.testing.assert_allclose(samples[:, 0], spline.evaluate(spline.strategy.whole_segments(n)[0], 0.), atol=1e-9)

def test_plotMPL(spline):
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    ax = spline.plotMPL()
    assert len(ax.lines) == 2
    plt.close("all")
