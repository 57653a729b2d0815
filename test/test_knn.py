from multiprocessing.pool import ThreadPool

import numpy as np
import pytest

from sdanalysis import KNNClassifier, NotFittedError, ShapeMismatchError, consensus


def two_clusters(rng, n=50):
    a = rng.normal(0.0, 0.3, (n, 2))
    b = rng.normal(5.0, 0.3, (n, 2))
    return np.vstack([a, b]), np.r_[np.zeros(n, dtype=int), np.ones(n, dtype=int)]


# ---------------- consensus ----------------

@pytest.mark.parametrize("votes, n_classes, expected", [
    ([0, 1, 1], 2, 1),
    ([2, 2, 0, 0, 1], 3, 0),
    ([1, 0], 2, 0),
    ([3], 4, 3),
    ([], 2, None),
])
def test_consensus(votes, n_classes, expected):
    assert consensus(votes, n_classes) == expected


# ---------------- classifier ----------------

def test_separates_clusters():
    rng = np.random.default_rng(0)
    X, y = two_clusters(rng)
    clf = KNNClassifier(k=5).fit(X, y)
    pred = clf.predict([[0.1, -0.2], [5.2, 4.9], [0.0, 0.0]])
    np.testing.assert_array_equal(pred, [0, 1, 0])
    np.testing.assert_array_equal(clf.predict(X), y)


def test_predict_before_fit():
    clf = KNNClassifier()
    assert not clf.is_fitted
    with pytest.raises(NotFittedError):
        clf.predict([[0.0, 0.0]])


def test_feature_dimension_mismatch():
    X, y = two_clusters(np.random.default_rng(1))
    clf = KNNClassifier().fit(X, y)
    with pytest.raises(ShapeMismatchError):
        clf.predict([[0.0, 0.0, 0.0]])


def test_label_length_mismatch():
    with pytest.raises(ShapeMismatchError):
        KNNClassifier().fit(np.zeros((4, 2)), [0, 1, 0])


def test_invalid_k():
    with pytest.raises(ValueError):
        KNNClassifier(k=0)


def test_fewer_samples_than_k():
    clf = KNNClassifier(k=5).fit([[0.0], [0.1], [10.0]], [1, 1, 0])
    # all three samples vote
    np.testing.assert_array_equal(clf.predict([[9.0], [0.0]]), [1, 1])


def test_tie_goes_to_lowest_class():
    clf = KNNClassifier(k=2).fit([[0.0], [1.0]], ["b", "a"])
    assert clf.predict([[0.5]])[0] == "a"
    assert clf.predict([[10.0]])[0] == "a"


def test_string_labels():
    X, _ = two_clusters(np.random.default_rng(2))
    labels = np.array(["liquid"] * 50 + ["crystal"] * 50)
    clf = KNNClassifier(k=3).fit(X, labels)
    np.testing.assert_array_equal(clf.predict([[0.0, 0.0], [5.0, 5.0]]), ["liquid", "crystal"])


def test_refit_replaces_model():
    clf = KNNClassifier(k=1).fit([[0.0]], [0])
    first = clf.model
    clf.fit([[0.0]], [7])
    assert clf.model is not first
    assert clf.predict([[0.0]])[0] == 7
    # the old model still answers with its own labels
    assert first.predict([[0.0]])[0] == 0


def test_empty_training_set():
    clf = KNNClassifier(k=3, default_label=4).fit(np.zeros((0, 2)), [])
    assert clf.is_fitted
    assert clf.model.n_samples == 0
    np.testing.assert_array_equal(clf.predict(np.zeros((3, 2))), [4, 4, 4])


def test_empty_query():
    X, y = two_clusters(np.random.default_rng(3))
    clf = KNNClassifier().fit(X, y)
    assert clf.predict(np.zeros((0, 2))).shape == (0,)


def test_concurrent_predict():
    rng = np.random.default_rng(5)
    X, y = two_clusters(rng)
    clf = KNNClassifier(k=5).fit(X, y)
    queries = [rng.normal(c, 0.3, (20, 2)) for c in (0.0, 5.0) * 4]

    with ThreadPool(4) as pool:
        results = pool.map(clf.predict, queries)

    for query, result in zip(queries, results):
        np.testing.assert_array_equal(result, clf.predict(query))
