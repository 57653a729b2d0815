"""
Trajectory input: LAMMPS-style text dumps streamed frame by frame.

Each frame becomes a :class:`RawFrame`, the record the analysis consumes:

    timestep      int
    positions     (N, 3) float32, cartesian, cell centred on the origin
    orientations  (N, 4) float32, quaternions (w, x, y, z)
    images        (N, 3) int32 or None
    cell          Cell (Lx, Ly, Lz, xy, xz, yz)

Supported blocks:

    ITEM: TIMESTEP
    <int>
    ITEM: NUMBER OF ATOMS
    <int>
    ITEM: BOX BOUNDS [xy xz yz] pp pp pp
    xlo_bound xhi_bound [xy]
    ylo_bound yhi_bound [xz]
    zlo_bound zhi_bound [yz]
    ITEM: ATOMS id x y z [quatw quati quatj quatk] [ix iy iz] ...

Coordinates may be given as x/y/z, unwrapped xu/yu/zu or scaled xs/ys/zs.
Column order after "ITEM: ATOMS" is respected, unknown columns are ignored,
rows are sorted by id. Frames without quaternion columns get the identity
orientation. LAMMPS tilt factors (lengths) are converted to the dimensionless
convention of :class:`~sdanalysis.distance.Cell`.

Intended usage:

    for raw in LAMMPSDumpReader("trajectory.dump"):
        frame = Frame.from_raw(raw)
"""
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np

from .distance import Cell
from .exceptions import DumpFormatError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_COORDS = (("x", "y", "z"), ("xu", "yu", "zu"), ("xs", "ys", "zs"))
_QUATS = ("quatw", "quati", "quatj", "quatk")
_IMAGES = ("ix", "iy", "iz")


# -----------------------------
# Data structures
# -----------------------------

@dataclass(frozen=True)
class RawFrame:
    timestep: int
    positions: np.ndarray
    orientations: np.ndarray
    images: Optional[np.ndarray]
    cell: Cell

    def __post_init__(self):
        n = len(self.positions)
        if len(self.orientations) != n or (self.images is not None and len(self.images) != n):
            raise DumpFormatError(f"Inconsistent per-particle arrays in timestep {self.timestep}")


@dataclass(frozen=True)
class _Bounds:
    cell: Cell
    origin: np.ndarray   # (3,) lower corner of the cell

    @property
    def centre(self) -> np.ndarray:
        return self.origin + 0.5 * self.cell.lattice_vectors().sum(axis=0)


# -----------------------------
# LAMMPS dump reader
# -----------------------------

class LAMMPSDumpReader:
    """Stream :class:`RawFrame` records from a LAMMPS-style dump file.

    Parameters
    ----------
    path : str | Path
    id_field : str, default "id"
        Name of the id column in the ATOMS header.
    """

    def __init__(self, path: PathLike, *, id_field: str = "id") -> None:
        self.path = Path(path)
        self.id_field = id_field

    def __iter__(self) -> Iterator[RawFrame]:
        with self.path.open("r", encoding="utf-8") as fh:
            while True:
                line = _read_nonempty(fh)
                if line is None:
                    return
                if not line.startswith("ITEM: TIMESTEP"):
                    raise DumpFormatError(f"Unexpected line (expect 'ITEM: TIMESTEP'): {line!r}")
                step = _read_int(fh, "TIMESTEP")

                line = _read_nonempty(fh)
                if line is None or not line.startswith("ITEM: NUMBER OF ATOMS"):
                    raise DumpFormatError("Missing 'ITEM: NUMBER OF ATOMS' block")
                n_atoms = _read_int(fh, "atom count")

                line = _read_nonempty(fh)
                if line is None or not line.startswith("ITEM: BOX BOUNDS"):
                    raise DumpFormatError("Missing 'ITEM: BOX BOUNDS' block")
                bounds = _read_bounds(fh, triclinic="xy" in line.split())

                line = _read_nonempty(fh)
                if line is None or not line.startswith("ITEM: ATOMS"):
                    raise DumpFormatError("Missing 'ITEM: ATOMS' block")
                fields = line.split()[2:]
                table = _read_table(fh, n_atoms)

                yield self._build_frame(step, bounds, fields, table)

    def _build_frame(self, step: int, bounds: _Bounds, fields: List[str], table: np.ndarray) -> RawFrame:
        if self.id_field not in fields:
            raise DumpFormatError(f"Required id field '{self.id_field}' not found in ATOMS header: {fields}")
        if table.size == 0:
            table = np.zeros((0, len(fields)), dtype=np.float64)
        if table.shape[1] < len(fields):
            raise DumpFormatError(f"ATOMS rows have {table.shape[1]} columns, header names {len(fields)}")
        ids = table[:, fields.index(self.id_field)].astype(np.int64)
        table = table[np.argsort(ids, kind="stable")]

        for names in _COORDS:
            if all(name in fields for name in names[:2]):
                cols = [fields.index(name) if name in fields else None for name in names]
                raw = np.zeros((len(table), 3), dtype=np.float64)
                for axis, col in enumerate(cols):
                    if col is not None:
                        raw[:, axis] = table[:, col]
                if names[0] == "xs":
                    positions = bounds.origin + raw @ bounds.cell.lattice_vectors()
                else:
                    positions = raw
                break
        else:
            raise DumpFormatError(f"No coordinate columns found in ATOMS header: {fields}")
        positions = (positions - bounds.centre).astype(np.float32)

        if all(name in fields for name in _QUATS):
            orientations = table[:, [fields.index(name) for name in _QUATS]].astype(np.float32)
        else:
            orientations = np.tile(np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float32), (len(table), 1))

        images = None
        if all(name in fields for name in _IMAGES):
            images = table[:, [fields.index(name) for name in _IMAGES]].astype(np.int32)

        return RawFrame(timestep=step, positions=positions, orientations=orientations,
                        images=images, cell=bounds.cell)


def _read_nonempty(fh: io.TextIOBase) -> Optional[str]:
    while True:
        s = fh.readline()
        if s == "":
            return None
        s = s.strip()
        if s != "":
            return s


def _read_int(fh: io.TextIOBase, what: str) -> int:
    s = _read_nonempty(fh)
    if s is None:
        raise DumpFormatError(f"Unexpected EOF reading {what}")
    try:
        return int(s)
    except ValueError as e:
        raise DumpFormatError(f"Invalid {what}: {s!r}") from e


def _read_floats_line(fh: io.TextIOBase, count: int) -> Tuple[float, ...]:
    s = _read_nonempty(fh)
    if s is None:
        raise DumpFormatError("Unexpected EOF while reading bounds line")
    parts = s.split()
    if len(parts) < count:
        raise DumpFormatError(f"Expected {count} floats in bounds line, got: {s!r}")
    try:
        return tuple(float(v) for v in parts[:count])
    except ValueError as e:
        raise DumpFormatError(f"Invalid bounds line: {s!r}") from e


def _read_bounds(fh: io.TextIOBase, triclinic: bool) -> _Bounds:
    count = 3 if triclinic else 2
    xlo_b, xhi_b, *rest_x = _read_floats_line(fh, count)
    ylo_b, yhi_b, *rest_y = _read_floats_line(fh, count)
    zlo, zhi, *rest_z = _read_floats_line(fh, count)
    xy, xz, yz = (rest_x[0], rest_y[0], rest_z[0]) if triclinic else (0.0, 0.0, 0.0)

    # bounding box of a tilted cell -> cell edges
    xlo = xlo_b - min(0.0, xy, xz, xy + xz)
    xhi = xhi_b - max(0.0, xy, xz, xy + xz)
    ylo = ylo_b - min(0.0, yz)
    yhi = yhi_b - max(0.0, yz)
    Lx, Ly, Lz = xhi - xlo, yhi - ylo, zhi - zlo
    try:
        cell = Cell(Lx, Ly, Lz, xy / Ly, xz / Lz, yz / Lz)
    except (ValueError, ZeroDivisionError) as e:
        raise DumpFormatError(f"Invalid box bounds: L=({Lx}, {Ly}, {Lz})") from e
    return _Bounds(cell=cell, origin=np.array([xlo, ylo, zlo], dtype=np.float64))


def _read_table(fh: io.TextIOBase, n_atoms: int) -> np.ndarray:
    rows = []
    for _ in range(n_atoms):
        line = _read_nonempty(fh)
        if line is None:
            raise DumpFormatError("Unexpected EOF in ATOMS block")
        try:
            rows.append([float(v) for v in line.split()])
        except ValueError as e:
            raise DumpFormatError(f"Invalid ATOMS row: {line!r}") from e
    if not rows:
        return np.zeros((0, 0), dtype=np.float64)
    if len({len(r) for r in rows}) > 1:
        raise DumpFormatError("ATOMS rows have different numbers of columns")
    return np.array(rows, dtype=np.float64).reshape(n_atoms, -1)


# -----------------------------
# Convenience access
# -----------------------------

def nframes(path: PathLike) -> int:
    """Number of frames in a dump (counts TIMESTEP headers)."""
    with Path(path).open("r", encoding="utf-8") as fh:
        return sum(1 for line in fh if line.startswith("ITEM: TIMESTEP"))


def read_frame(path: PathLike, index: int) -> RawFrame:
    """The ``index``-th frame of a dump; negative indices count from the end."""
    if index < 0:
        index += nframes(path)
    if index >= 0:
        for i, raw in enumerate(LAMMPSDumpReader(path)):
            if i == index:
                return raw
    raise IndexError(f"Frame {index} not found in {path}")


def write_dump(path: PathLike, frames: Iterable[RawFrame]) -> None:
    """Write frames in the triclinic dump layout read by :class:`LAMMPSDumpReader`."""
    with Path(path).open("w", encoding="utf-8") as fh:
        for raw in frames:
            cell = raw.cell
            a = cell.lattice_vectors()
            lo = -0.5 * a.sum(axis=0)
            xy, xz, yz = a[1, 0], a[2, 0], a[2, 1]
            n = len(raw.positions)
            fh.write(f"ITEM: TIMESTEP\n{raw.timestep}\n")
            fh.write(f"ITEM: NUMBER OF ATOMS\n{n}\n")
            fh.write("ITEM: BOX BOUNDS xy xz yz pp pp pp\n")
            fh.write(f"{lo[0] + min(0.0, xy, xz, xy + xz):.8g} "
                     f"{lo[0] + cell.Lx + max(0.0, xy, xz, xy + xz):.8g} {xy:.8g}\n")
            fh.write(f"{lo[1] + min(0.0, yz):.8g} {lo[1] + cell.Ly + max(0.0, yz):.8g} {xz:.8g}\n")
            fh.write(f"{lo[2]:.8g} {lo[2] + cell.Lz:.8g} {yz:.8g}\n")
            header = "id x y z quatw quati quatj quatk"
            if raw.images is not None:
                header += " ix iy iz"
            fh.write(f"ITEM: ATOMS {header}\n")
            for i in range(n):
                p = raw.positions[i]
                q = raw.orientations[i]
                row = f"{i + 1} {p[0]:.8g} {p[1]:.8g} {p[2]:.8g} {q[0]:.8g} {q[1]:.8g} {q[2]:.8g} {q[3]:.8g}"
                if raw.images is not None:
                    im = raw.images[i]
                    row += f" {im[0]} {im[1]} {im[2]}"
                fh.write(row + "\n")
    logger.debug("Wrote dump %s", path)
