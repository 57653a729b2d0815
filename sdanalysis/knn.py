# =============================================================================
# sdanalysis — knn.py
# k-nearest-neighbour classification over fixed-length feature vectors.
#
# A fitted model is an immutable value: ``fit`` builds a new KNNModel and swaps
# it in with one assignment, ``predict`` only reads the model it was handed.
# A trained classifier can therefore be shared between worker threads.
# =============================================================================
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
from sklearn.neighbors import NearestNeighbors

from .exceptions import NotFittedError, ShapeMismatchError

logger = logging.getLogger(__name__)


def consensus(votes: Sequence[int], n_classes: int) -> Optional[int]:
    """
    Majority vote over class codes ``0..n_classes-1``.

    Ties go to the lowest code. Returns ``None`` when there are no votes.
    """
    votes = np.asarray(votes, dtype=np.int64)
    if votes.size == 0 or n_classes <= 0:
        return None
    return int(np.argmax(np.bincount(votes, minlength=n_classes)))


@dataclass(frozen=True)
class KNNModel:
    index: Optional[NearestNeighbors]   # None for an empty training set
    codes: np.ndarray                   # (M,) class code of every training sample
    classes: np.ndarray                 # (C,) sorted distinct labels; code -> label
    k: int
    n_features: Optional[int]

    @property
    def n_samples(self) -> int:
        return int(self.codes.size)

    def predict(self, features, default_label: Any = 0) -> np.ndarray:
        X = np.asarray(features, dtype=np.float64)
        if X.ndim == 1 and X.size == 0:
            return np.full(0, default_label)
        if X.ndim != 2:
            raise ShapeMismatchError(f"features must be 2D (Q, D), got shape {X.shape}")
        if self.n_features is not None and X.shape[1] != self.n_features:
            raise ShapeMismatchError(
                f"model was fitted on {self.n_features} features, got {X.shape[1]}"
            )
        n_query = X.shape[0]
        if self.index is None or n_query == 0:
            return np.full(n_query, default_label)

        idx = self.index.kneighbors(X, return_distance=False)
        votes = self.codes[idx]

        n_classes = len(self.classes)
        winners = np.fromiter((consensus(row, n_classes) for row in votes),
                              dtype=np.int64, count=n_query)
        return self.classes[winners]


class KNNClassifier:
    """
    k-nearest-neighbour classifier in plain euclidean feature space.

    Parameters
    ----------
    k : int, default 5
        Number of neighbours voting for each prediction. When fewer training
        samples exist, all of them vote.
    default_label : any, default 0
        Label returned when no votes are available (empty training set).
    """

    def __init__(self, k: int = 5, default_label: Any = 0):
        if int(k) < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        self.k = int(k)
        self.default_label = default_label
        self._model: Optional[KNNModel] = None

    def __repr__(self) -> str:
        n = self._model.n_samples if self._model is not None else None
        return f"KNNClassifier(k={self.k}, fitted_samples={n})"

    @property
    def model(self) -> Optional[KNNModel]:
        return self._model

    @property
    def is_fitted(self) -> bool:
        return self._model is not None

    def fit(self, features, labels) -> "KNNClassifier":
        """Replace the model with one trained on ``features`` (M, D) and ``labels`` (M,)."""
        X = np.asarray(features, dtype=np.float64)
        y = np.asarray(labels)
        if X.size == 0 and X.ndim < 2:
            X = X.reshape(0, 0)
        if X.ndim != 2:
            raise ShapeMismatchError(f"features must be 2D (M, D), got shape {X.shape}")
        if y.ndim != 1 or y.shape[0] != X.shape[0]:
            raise ShapeMismatchError(
                f"got {X.shape[0]} feature vectors but labels of shape {y.shape}"
            )

        if X.shape[0] == 0:
            model = KNNModel(index=None, codes=np.zeros(0, dtype=np.int64),
                             classes=np.zeros(0, dtype=y.dtype), k=self.k,
                             n_features=X.shape[1] or None)
        else:
            classes, codes = np.unique(y, return_inverse=True)
            index = NearestNeighbors(n_neighbors=min(self.k, X.shape[0])).fit(X)
            model = KNNModel(index=index, codes=codes.astype(np.int64).ravel(),
                             classes=classes, k=self.k, n_features=X.shape[1])
        logger.debug("Fitted k-NN model on %d samples, %d classes", model.n_samples, len(model.classes))
        self._model = model
        return self

    def predict(self, features) -> np.ndarray:
        """Consensus label of the ``k`` nearest training samples of each row."""
        model = self._model
        if model is None:
            raise NotFittedError("The classifier has not been fitted yet; call fit() first")
        return model.predict(features, default_label=self.default_label)
