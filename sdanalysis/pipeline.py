# =============================================================================
# sdanalysis — pipeline.py
# Per-frame analysis rows and the trajectory driver.
#
# Frames are read one after the other and handed to a bounded pool of worker
# threads; results come back in completion order, not trajectory order.
# Dependencies: numpy, pandas, tqdm.
# =============================================================================
import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from .dump_io import LAMMPSDumpReader, RawFrame, nframes, read_frame
from .exceptions import DegenerateGeometryError, SDAnalysisError
from .frame import Frame
from .knn import KNNClassifier
from .learning import LabelRule, classify, region_labels, train_classifier
from .order import hexatic_order, num_neighbours, orientational_order
from .voronoi import voronoi_area, voronoi_area_periodic

logger = logging.getLogger(__name__)

FrameLike = Union[Frame, RawFrame]


@dataclass(frozen=True)
class AnalysisSettings:
    """What to compute for every frame.

    num_neighbours     : neighbours used by the order parameters
    neighbour_cutoff   : distance for the neighbour count (column skipped if None)
    hexatic            : add the hexatic order column
    voronoi            : add the (boundary truncated) Voronoi area column
    periodic_voronoi   : add the periodic Voronoi area column
    classifier         : fitted KNNClassifier; adds the class_label column
    feature_neighbours : neighbours in the classifier feature vector
    workers            : worker threads (1 = run in the calling thread)
    show_progress      : tqdm progress bar in analyse_file
    """
    num_neighbours: int = 6
    neighbour_cutoff: Optional[float] = None
    hexatic: bool = True
    voronoi: bool = False
    periodic_voronoi: bool = False
    classifier: Optional[KNNClassifier] = None
    feature_neighbours: int = 6
    workers: int = 1
    show_progress: bool = True


def _as_frame(item: FrameLike) -> Frame:
    return item if isinstance(item, Frame) else Frame.from_raw(item)


def _areas(func, frame: Frame) -> np.ndarray:
    try:
        return func(frame)
    except DegenerateGeometryError as e:
        logger.warning("Voronoi areas unavailable for timestep %d: %s", frame.timestep, e)
        return np.full(len(frame), np.nan)


def analyse_frame(frame: FrameLike, settings: Optional[AnalysisSettings] = None) -> pd.DataFrame:
    """
    Result rows of one frame, one row per particle.

    Columns: molecule_index, timestep, orientational_order and, depending on
    ``settings``, hexatic_order, num_neighbours, class_label, voronoi_area,
    voronoi_area_periodic.
    """
    settings = settings or AnalysisSettings()
    frame = _as_frame(frame)
    n = len(frame)
    k = settings.num_neighbours

    columns = {
        "molecule_index": np.arange(n, dtype=np.int64),
        "timestep": np.full(n, frame.timestep, dtype=np.int64),
        "orientational_order": orientational_order(frame, k),
    }
    if settings.hexatic:
        columns["hexatic_order"] = hexatic_order(frame, k)
    if settings.neighbour_cutoff is not None:
        columns["num_neighbours"] = num_neighbours(frame, settings.neighbour_cutoff)
    if settings.classifier is not None:
        columns["class_label"] = classify(frame, settings.classifier, settings.feature_neighbours)
    if settings.voronoi:
        columns["voronoi_area"] = _areas(voronoi_area, frame)
    if settings.periodic_voronoi:
        columns["voronoi_area_periodic"] = _areas(voronoi_area_periodic, frame)
    return pd.DataFrame(columns)


def _unwrap(result):
    if isinstance(result, BaseException):
        raise result
    return result


def analyse_trajectory(frames: Iterable[FrameLike],
                       settings: Optional[AnalysisSettings] = None) -> Iterator[pd.DataFrame]:
    """
    Analyse every frame, yielding one DataFrame per frame as it completes.

    With ``settings.workers > 1`` frames are dispatched in input order to a
    thread pool, at most two per worker in flight, and yielded in completion
    order; sort by ``timestep`` downstream when order matters. The first
    failing frame re-raises its exception here.
    """
    settings = settings or AnalysisSettings()
    if settings.workers <= 1:
        for item in frames:
            yield analyse_frame(item, settings)
        return

    done: "queue.Queue" = queue.Queue()
    window = threading.BoundedSemaphore(2 * settings.workers)

    def _finish(result):
        done.put(result)
        window.release()

    pending = 0
    with ThreadPool(settings.workers) as pool:
        for item in frames:
            window.acquire()
            pool.apply_async(analyse_frame, (item, settings), callback=_finish, error_callback=_finish)
            pending += 1
            while True:
                try:
                    result = done.get_nowait()
                except queue.Empty:
                    break
                pending -= 1
                yield _unwrap(result)
        while pending:
            pending -= 1
            yield _unwrap(done.get())


def analyse_file(path: Union[str, Path], outfile: Union[str, Path, None] = None,
                 settings: Optional[AnalysisSettings] = None, num_frames: Optional[int] = None,
                 sort: bool = False) -> pd.DataFrame:
    """
    Analyse a dump file and optionally write the rows to CSV.

    Parameters
    ----------
    path : dump file
    outfile : CSV destination, or None to only return the table
    settings : AnalysisSettings
    num_frames : analyse only the first ``num_frames`` frames
    sort : order rows by (timestep, molecule_index) instead of completion order
    """
    settings = settings or AnalysisSettings()
    total = nframes(path)
    if num_frames is not None:
        total = min(total, num_frames)
    frames = itertools.islice(LAMMPSDumpReader(path), total)
    logger.info("Analysing %d frame(s) of %s with %d worker(s)", total, path, settings.workers)

    tables = list(tqdm(analyse_trajectory(frames, settings), total=total,
                       desc=Path(path).name, unit="frame", disable=not settings.show_progress))
    if tables:
        table = pd.concat(tables, ignore_index=True)
    else:
        table = analyse_frame(Frame(np.zeros((0, 3)), None, (1, 1, 1, 0, 0, 0)), settings)
    if sort:
        table = table.sort_values(["timestep", "molecule_index"], kind="stable").reset_index(drop=True)
    if outfile is not None:
        table.to_csv(outfile, index=False)
        logger.info("Wrote %d rows to %s", len(table), outfile)
    return table


def train_from_files(paths: Sequence[Union[str, Path]], index: int, k_neighbours: int = 6,
                     k: int = 5, label_rule: LabelRule = region_labels) -> KNNClassifier:
    """
    Train a classifier on frame ``index`` of each file.

    Files that cannot be read are logged and skipped.
    """
    frames = []
    for path in paths:
        try:
            frames.append(Frame.from_raw(read_frame(path, index)))
        except (OSError, IndexError, SDAnalysisError) as e:
            logger.warning("Skipping training file %s: %s", path, e)
    return train_classifier(frames, k_neighbours=k_neighbours, k=k, label_rule=label_rule)
