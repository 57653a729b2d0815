import warnings

import matplotlib.pyplot as plt
import numpy as np

from .voronoi import cell_boundary, voronoi_polygons


def plot_voronoi_cells(frame, values=None, ax=None, cmap=None, label=None):
    """Draw the Voronoi cells of a frame, optionally coloured by a per-particle value.

    Args:
        frame (:class:`sdanalysis.frame.Frame`):
            Configuration to draw.
        values (:class:`numpy.ndarray`):
            One value per particle (e.g. an order parameter or class label).
            If :code:`None`, cells are coloured by their number of sides.
        ax (:class:`matplotlib.axes.Axes`): Axes object to plot.
            If :code:`None`, make a new axes and figure object.
        cmap (str):
            Colormap name to use (Default value = :code:`None`).
        label (str):
            Colorbar label.

    Returns:
        :class:`matplotlib.axes.Axes`: Axes object with the diagram.
    """
    from matplotlib.collections import PatchCollection
    from matplotlib.colorbar import Colorbar
    from matplotlib.patches import Polygon
    from mpl_toolkits.axes_grid1.axes_divider import make_axes_locatable

    if ax is None:
        fig = plt.figure()
        ax = fig.subplots()

    polygons = voronoi_polygons(frame)
    patches = [Polygon(poly) for poly in polygons if len(poly) >= 3]
    patch_collection = PatchCollection(patches, edgecolors="black", alpha=0.4)

    if values is None:
        colors = np.array([len(poly) for poly in polygons if len(poly) >= 3])
        discrete = True
        label = label or "number of sides"
    else:
        values = np.asarray(values)
        if len(values) != len(polygons):
            raise ValueError(f"Expected {len(polygons)} values, got {len(values)}")
        colors = np.array([v for v, poly in zip(values, polygons) if len(poly) >= 3])
        discrete = np.issubdtype(colors.dtype, np.integer)
    num_colors = np.unique(colors).size

    if cmap is None:
        if discrete and num_colors <= 10:
            cmap = "tab10"
        elif discrete:
            if num_colors > 20:
                warnings.warn(
                    "More than 20 unique colors were requested. "
                    "Consider providing a colormap to the cmap "
                    "argument.",
                    UserWarning,
                )
            cmap = "tab20"
        else:
            cmap = "viridis"

    patch_collection.set_array(colors.astype(np.float64))
    patch_collection.set_cmap(cmap)
    ax.add_collection(patch_collection)

    # Need to copy the first corner so that the outline is closed.
    corners = cell_boundary(frame.cell)
    corners = np.vstack([corners, corners[:1]])
    ax.plot(corners[:, 0], corners[:, 1], color="k")
    points = frame.positions
    ax.plot(points[:, 0], points[:, 1], ".", color="k", markersize=2)

    ax.set_title(f"Voronoi Diagram (timestep {frame.timestep})")
    ax.set_xlim((np.min(corners[:, 0]), np.max(corners[:, 0])))
    ax.set_ylim((np.min(corners[:, 1]), np.max(corners[:, 1])))
    ax.set_aspect("equal", "datalim")

    ax_divider = make_axes_locatable(ax)
    cax = ax_divider.append_axes("right", size="7%", pad="10%")
    cb = Colorbar(cax, patch_collection)
    if label:
        cb.set_label(label)
    return ax


def plot_order_histogram(values, bins=50, ax=None, label=None, xlabel="order parameter"):
    """
    Histogram of a per-particle quantity, normalised as a density.

    Parameters
    ----------
    values : array-like
    bins : int
    ax : matplotlib Axes or None

    Returns
    -------
    ax
    """
    if ax is None:
        _, ax = plt.subplots()
    values = np.asarray(values, dtype=float)
    values = values[np.isfinite(values)]
    ax.hist(values, bins=bins, density=True, histtype="step", lw=1.5, label=label)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("density")
    ax.grid(True)
    if label:
        ax.legend(frameon=False)
    return ax


def plot_order_map(frame, values, ax=None, cmap="viridis", s=10.0, label=None):
    """
    Scatter plot of the particle positions coloured by ``values``.

    Returns
    -------
    ax
    """
    if ax is None:
        _, ax = plt.subplots()
    values = np.asarray(values)
    if len(values) != len(frame):
        raise ValueError(f"Expected {len(frame)} values, got {len(values)}")
    sc = ax.scatter(frame.positions[:, 0], frame.positions[:, 1], c=values, s=s, cmap=cmap)
    ax.set_aspect("equal", adjustable="box")
    ax.set_xlabel("x"); ax.set_ylabel("y")
    cb = ax.figure.colorbar(sc, ax=ax)
    if label:
        cb.set_label(label)
    return ax
