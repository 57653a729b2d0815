import logging

import numpy as np
import pandas as pd
import pytest

from sdanalysis import (
    AnalysisSettings,
    CRYSTAL,
    Frame,
    analyse_file,
    analyse_frame,
    analyse_trajectory,
    crystal_in_liquid,
    random_frame,
    setup_logging,
    train_classifier,
    train_from_files,
    triangular_lattice,
    write_dump,
)


@pytest.fixture
def trajectory():
    rng = np.random.default_rng(0)
    return [random_frame(60, box=(8.0, 8.0, 1.0), two_dimensional=True, timestep=100 * t, rng=rng)
            for t in range(8)]


@pytest.fixture
def dump_path(tmp_path, trajectory):
    path = tmp_path / "trajectory.dump"
    write_dump(path, trajectory)
    return path


# ---------------- single frame ----------------

def test_default_columns():
    table = analyse_frame(triangular_lattice(6, 6, timestep=5))
    assert list(table.columns) == ["molecule_index", "timestep", "orientational_order", "hexatic_order"]
    assert len(table) == 36
    assert (table["timestep"] == 5).all()
    np.testing.assert_array_equal(table["molecule_index"], np.arange(36))
    np.testing.assert_allclose(table["hexatic_order"], 1.0, atol=1e-4)


def test_all_columns():
    frame = Frame.from_raw(crystal_in_liquid(12, 12, rng=np.random.default_rng(0)))
    clf = train_classifier([frame])
    settings = AnalysisSettings(neighbour_cutoff=1.1, voronoi=True, periodic_voronoi=True,
                                classifier=clf)
    table = analyse_frame(frame, settings)
    assert set(table.columns) == {
        "molecule_index", "timestep", "orientational_order", "hexatic_order",
        "num_neighbours", "class_label", "voronoi_area", "voronoi_area_periodic",
    }
    assert (table["num_neighbours"] == 6).all()
    assert table["voronoi_area"].sum() == pytest.approx(frame.cell.area, rel=1e-5)
    assert table["voronoi_area_periodic"].sum() == pytest.approx(frame.cell.area, rel=1e-3)
    assert table.loc[table["orientational_order"] == 1.0, "class_label"].eq(CRYSTAL).any()


def test_degenerate_voronoi_gives_nan(caplog):
    frame = Frame(np.array([[0, 0, 0], [1, 0, 0]]), None, (10.0, 10.0, 1.0, 0, 0, 0), timestep=4)
    with caplog.at_level(logging.WARNING, logger="sdanalysis"):
        table = analyse_frame(frame, AnalysisSettings(voronoi=True))
    assert table["voronoi_area"].isna().all()
    assert "timestep 4" in caplog.text


# ---------------- trajectories ----------------

def test_sequential_trajectory_keeps_order(trajectory):
    steps = [int(t["timestep"].iloc[0]) for t in analyse_trajectory(trajectory)]
    assert steps == [r.timestep for r in trajectory]


@pytest.mark.parametrize("workers", [2, 3])
def test_threaded_matches_sequential(trajectory, workers):
    settings = AnalysisSettings(neighbour_cutoff=1.0, voronoi=True)
    expected = pd.concat(analyse_trajectory(trajectory, settings), ignore_index=True)

    threaded = AnalysisSettings(neighbour_cutoff=1.0, voronoi=True, workers=workers)
    got = pd.concat(analyse_trajectory(trajectory, threaded), ignore_index=True)
    got = got.sort_values(["timestep", "molecule_index"]).reset_index(drop=True)
    pd.testing.assert_frame_equal(got, expected)


def test_threaded_error_propagates(trajectory):
    broken = list(trajectory) + ["not a frame"]
    with pytest.raises(AttributeError):
        list(analyse_trajectory(broken, AnalysisSettings(workers=2)))


# ---------------- files ----------------

def test_analyse_file_writes_csv(dump_path, tmp_path):
    out = tmp_path / "order.csv"
    settings = AnalysisSettings(workers=2, show_progress=False)
    table = analyse_file(dump_path, out, settings=settings, sort=True)
    assert len(table) == 8 * 60
    assert table["timestep"].is_monotonic_increasing

    loaded = pd.read_csv(out)
    assert list(loaded.columns) == list(table.columns)
    np.testing.assert_allclose(loaded["orientational_order"], table["orientational_order"])


def test_analyse_file_num_frames(dump_path):
    table = analyse_file(dump_path, settings=AnalysisSettings(show_progress=False), num_frames=3)
    assert sorted(table["timestep"].unique()) == [0, 100, 200]


def test_analyse_empty_file(tmp_path):
    path = tmp_path / "empty.dump"
    path.write_text("")
    table = analyse_file(path, settings=AnalysisSettings(show_progress=False))
    assert table.empty
    assert "orientational_order" in table.columns


def test_train_from_files(tmp_path, caplog):
    good = tmp_path / "crystal.dump"
    write_dump(good, [crystal_in_liquid(12, 12, rng=np.random.default_rng(s), timestep=s)
                      for s in range(2)])
    missing = tmp_path / "missing.dump"

    with caplog.at_level(logging.WARNING, logger="sdanalysis"):
        clf = train_from_files([good, missing], index=-1)
    assert "missing.dump" in caplog.text
    assert clf.model.n_samples > 0
    np.testing.assert_array_equal(clf.model.classes, [0, 1])


# ---------------- logging ----------------

def test_setup_logging(tmp_path):
    log_file = tmp_path / "run.log"
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    try:
        assert logger.name == "sdanalysis"
        assert len(logger.handlers) == 2
        setup_logging(logging.INFO)
        assert len(logger.handlers) == 1
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
    assert "Logging initialised" in log_file.read_text()


def test_setup_logging_level_names(capsys):
    logger = setup_logging("debug")
    try:
        assert logger.level == logging.DEBUG
        logging.getLogger("sdanalysis.pipeline").info("frame done")
        assert "frame done" in capsys.readouterr().out
        with pytest.raises(ValueError):
            setup_logging("chatty")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
