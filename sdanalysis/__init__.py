"""
sdanalysis — structural descriptors of periodic particle configurations
"""

# -----------------------------------------------------------------------------
# errors
# -----------------------------------------------------------------------------
from .exceptions import (
    SDAnalysisError,
    CellError,
    ShapeMismatchError,
    NotFittedError,
    DegenerateGeometryError,
    DumpFormatError,
)

# -----------------------------------------------------------------------------
# periodic metric
# -----------------------------------------------------------------------------
from .distance import (
    Cell,
    to_fractional,
    to_cartesian,
    minimum_image,
    minimum_image_sequential,
    minimum_image_displacement,
    squared_distance,
)

# -----------------------------------------------------------------------------
# frames + neighbour queries
# -----------------------------------------------------------------------------
from .frame import Frame, NeighbourIndex

# -----------------------------------------------------------------------------
# order parameters
# -----------------------------------------------------------------------------
from .order import (
    quaternion_angle,
    relative_orientations,
    orientational_order,
    hexatic_order,
    hexatic_order_complex,
    num_neighbours,
)

# -----------------------------------------------------------------------------
# classification
# -----------------------------------------------------------------------------
from .knn import KNNClassifier, KNNModel, consensus
from .learning import (
    LIQUID,
    CRYSTAL,
    EXCLUDED,
    extract_features,
    region_labels,
    training_samples,
    train_classifier,
    classify,
)

# -----------------------------------------------------------------------------
# voronoi
# -----------------------------------------------------------------------------
from .voronoi import (
    shoelace,
    cell_boundary,
    voronoi_polygons,
    voronoi_area,
    voronoi_area_periodic,
)

# -----------------------------------------------------------------------------
# trajectory io + drivers
# -----------------------------------------------------------------------------
from .dump_io import RawFrame, LAMMPSDumpReader, nframes, read_frame, write_dump
from .pipeline import (
    AnalysisSettings,
    analyse_frame,
    analyse_trajectory,
    analyse_file,
    train_from_files,
)
from .logging_config import setup_logging

# -----------------------------------------------------------------------------
# synthetic configurations
# -----------------------------------------------------------------------------
from .utils import (
    random_quaternions,
    planar_quaternions,
    triangular_lattice,
    random_frame,
    crystal_in_liquid,
)

# -----------------------------------------------------------------------------
# visualization
# -----------------------------------------------------------------------------
from .visualization import (
    plot_voronoi_cells,
    plot_order_histogram,
    plot_order_map,
)

# -----------------------------------------------------------------------------
# public api
# -----------------------------------------------------------------------------
__all__ = [
    # errors
    "SDAnalysisError",
    "CellError",
    "ShapeMismatchError",
    "NotFittedError",
    "DegenerateGeometryError",
    "DumpFormatError",

    # distance
    "Cell",
    "to_fractional",
    "to_cartesian",
    "minimum_image",
    "minimum_image_sequential",
    "minimum_image_displacement",
    "squared_distance",

    # frame
    "Frame",
    "NeighbourIndex",

    # order
    "quaternion_angle",
    "relative_orientations",
    "orientational_order",
    "hexatic_order",
    "hexatic_order_complex",
    "num_neighbours",

    # classification
    "KNNClassifier",
    "KNNModel",
    "consensus",
    "LIQUID",
    "CRYSTAL",
    "EXCLUDED",
    "extract_features",
    "region_labels",
    "training_samples",
    "train_classifier",
    "classify",

    # voronoi
    "shoelace",
    "cell_boundary",
    "voronoi_polygons",
    "voronoi_area",
    "voronoi_area_periodic",

    # io + drivers
    "RawFrame",
    "LAMMPSDumpReader",
    "nframes",
    "read_frame",
    "write_dump",
    "AnalysisSettings",
    "analyse_frame",
    "analyse_trajectory",
    "analyse_file",
    "train_from_files",
    "setup_logging",

    # synthetic configurations
    "random_quaternions",
    "planar_quaternions",
    "triangular_lattice",
    "random_frame",
    "crystal_in_liquid",

    # visualization
    "plot_voronoi_cells",
    "plot_order_histogram",
    "plot_order_map",
]
