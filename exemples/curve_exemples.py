# %%
import numpy as np
import matplotlib.pyplot as plt
from cubic_bspline import CubicBSpline, Topology, ResamplerConfig


# %% Open curve through knot points
spline = CubicBSpline(NPh=2, topology=Topology.OPEN, lod=100)
for pt in [(10, 10), (40, 80), (90, 20), (150, 60), (200, 15), (260, 40)]:
    spline.add_knot_pt(pt)
print(f"Control points computed from the knots, shape {spline.ctrl_pts.shape}:")
print(spline.ctrl_pts)

spline.plotMPL()
plt.title(spline.topology_label)
plt.gca().set_aspect("equal")
plt.show()


# %% Positions and tangents along a segment
t_vals = np.linspace(0, 1, 5)
print("Points of segment 2:")
print(spline.evaluate_segment(2, t_vals))
print("Tangents of segment 2:")
print(spline.evaluate_segment(2, t_vals, k=1))


# %% Arc length and equidistant knots
print(f"Length before resampling: {spline.length():.3f}")
print(f"Gaps: {[round(spline.length(i, i), 2) for i in range(spline.get_nb_knot_pts() - 1)]}")
for step, delta in enumerate(spline.iter_resample(ResamplerConfig(max_iterations=20))):
    print(f"pass {step}: knots moved by {delta:.4f}")
    if delta < 0.1 or step >= 19:
        break
print(f"Gaps after resampling: {[round(spline.length(i, i), 2) for i in range(spline.get_nb_knot_pts() - 1)]}")

spline.plotMPL()
plt.title("Equidistant knots")
plt.gca().set_aspect("equal")
plt.show()


# %% Closed curve and its rasterization
spline.topology = Topology.CLOSED
path = spline.rasterize()
print(f"Rasterized into {path.shape[1]} connected pixels")

image = np.zeros((path[1].max() - path[1].min() + 1, path[0].max() - path[0].min() + 1))
image[path[1] - path[1].min(), path[0] - path[0].min()] = 1
plt.imshow(image, origin="lower", cmap="gray_r")
plt.title(spline.topology_label + " rasterized")
plt.show()
