"""
Training and applying the structural classifier.

Features are the relative orientation angles of a particle to its nearest
neighbours; training labels come from a spatial rule applied to frames that
hold a crystal embedded in liquid.
"""
import logging
from typing import Callable, Iterable, Tuple

import numpy as np

from .frame import Frame
from .knn import KNNClassifier
from .order import relative_orientations

logger = logging.getLogger(__name__)

LIQUID = 0
CRYSTAL = 1
EXCLUDED = -1

LabelRule = Callable[[Frame], np.ndarray]


def extract_features(frame: Frame, k: int = 6) -> np.ndarray:
    """(N, k) relative orientation angles to the ``k`` nearest neighbours."""
    return relative_orientations(frame, k)


def region_labels(frame: Frame, crystal: float = 0.3, buffer: float = 0.35) -> np.ndarray:
    """
    Label particles by where they sit in the cell.

    Positions are scaled by (Lx, Ly). Particles with both |x/Lx| and |y/Ly|
    below ``crystal`` are CRYSTAL, those below ``buffer`` sit on the
    interface and are EXCLUDED, everything else is LIQUID.
    """
    x = np.abs(frame.positions[:, 0] / frame.cell.Lx)
    y = np.abs(frame.positions[:, 1] / frame.cell.Ly)
    labels = np.full(len(frame), LIQUID, dtype=np.int64)
    labels[(x < buffer) & (y < buffer)] = EXCLUDED
    labels[(x < crystal) & (y < crystal)] = CRYSTAL
    return labels


def training_samples(frame: Frame, label_rule: LabelRule = region_labels,
                     k: int = 6) -> Tuple[np.ndarray, np.ndarray]:
    """Features and labels of one frame, EXCLUDED particles dropped."""
    features = extract_features(frame, k)
    labels = np.asarray(label_rule(frame))
    keep = labels != EXCLUDED
    return features[keep], labels[keep]


def train_classifier(frames: Iterable[Frame], k_neighbours: int = 6, k: int = 5,
                     label_rule: LabelRule = region_labels) -> KNNClassifier:
    """Fit a fresh :class:`KNNClassifier` on the samples of all ``frames``."""
    features, labels = [], []
    for frame in frames:
        f, lab = training_samples(frame, label_rule=label_rule, k=k_neighbours)
        features.append(f)
        labels.append(lab)
    if features:
        X = np.concatenate(features)
        y = np.concatenate(labels)
    else:
        X = np.zeros((0, k_neighbours))
        y = np.zeros(0, dtype=np.int64)
    logger.info("Training classifier on %d samples (%d crystalline)", len(y), int(np.sum(y == CRYSTAL)))
    return KNNClassifier(k=k, default_label=LIQUID).fit(X, y)


def classify(frame: Frame, classifier: KNNClassifier, k: int = 6) -> np.ndarray:
    """Predicted structural label of every particle of ``frame``."""
    return classifier.predict(extract_features(frame, k))
