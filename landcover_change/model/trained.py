"""Trained classifier and confusion-matrix objects.

A :class:`TrainedModel` is produced by exactly one ``train`` call and is
never refitted; it is consumed through ``predict`` and ``evaluate``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from landcover_change.types import CLASSES, LandCover


class TrainedModel:
    """A fitted decision forest plus the metadata needed to apply it.

    Attributes
    ----------
    bands : tuple[str, ...]
        Feature bands, in the order the estimator expects them.
    classes : tuple[int, ...]
        Class labels present in the training data.
    n_samples : int
        Number of training feature vectors.
    hyperparameters : dict
        Settings the estimator was built with.
    """

    def __init__(
        self,
        *,
        estimator: Any,
        bands: list[str] | tuple[str, ...],
        classes: list[int] | tuple[int, ...],
        n_samples: int,
        hyperparameters: dict[str, Any] | None = None,
        framework_version: str | None = None,
    ) -> None:
        self._estimator = estimator
        self._bands = tuple(bands)
        self._classes = tuple(int(c) for c in classes)
        self._n_samples = int(n_samples)
        self._hyperparameters = dict(hyperparameters) if hyperparameters else {}
        self._framework_version = framework_version

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def estimator(self) -> Any:
        """Access the underlying sklearn estimator (internal)."""
        return self._estimator

    @property
    def bands(self) -> tuple[str, ...]:
        return self._bands

    @property
    def classes(self) -> tuple[int, ...]:
        return self._classes

    @property
    def n_samples(self) -> int:
        return self._n_samples

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return dict(self._hyperparameters)

    @property
    def framework_version(self) -> str | None:
        return self._framework_version

    @property
    def total_nodes(self) -> int | None:
        """Total number of tree nodes across the forest."""
        trees = getattr(self._estimator, "estimators_", None)
        if trees is None:
            return None
        return sum(t.tree_.node_count for t in trees)

    def predict_samples(self, X: np.ndarray) -> np.ndarray:
        """Majority-vote class per row of *X*; rows holding NaN yield NaN.

        Each tree casts one vote for its predicted class.  Ties go to the
        lowest class label.
        """
        X = np.asarray(X, dtype=np.float64)
        out = np.full(X.shape[0], np.nan, dtype=np.float32)
        valid = ~np.isnan(X).any(axis=1)
        if valid.any():
            out[valid] = self._majority_vote(X[valid])
        return out

    def _majority_vote(self, X: np.ndarray) -> np.ndarray:
        trees = getattr(self._estimator, "estimators_", None)
        if trees is None:
            return self._estimator.predict(X)
        labels = self._estimator.classes_
        # forest members are fitted on class indices into ``classes_``
        votes = np.stack([tree.predict(X) for tree in trees]).astype(np.intp)
        counts = np.stack([(votes == i).sum(axis=0) for i in range(len(labels))])
        return labels[counts.argmax(axis=0)]

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"<TrainedModel trees={self._hyperparameters.get('num_trees')} "
            f"bands={list(self._bands)} classes={list(self._classes)} "
            f"n_samples={self._n_samples}>"
        )


@dataclass(frozen=True, eq=False)
class ConfusionMatrix:
    """Actual × predicted count table over the fixed land-cover classes.

    ``matrix[i, j]`` counts test samples of actual class ``labels[i]``
    predicted as ``labels[j]``.
    """

    matrix: np.ndarray
    labels: tuple[int, ...] = field(default=CLASSES)

    def __post_init__(self) -> None:
        matrix = np.array(self.matrix, dtype=np.int64, copy=True)
        if matrix.shape != (len(self.labels), len(self.labels)):
            raise ValueError(
                f"Confusion matrix must be {len(self.labels)}x{len(self.labels)}, "
                f"got shape {matrix.shape}"
            )
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)

    @classmethod
    def empty(cls) -> "ConfusionMatrix":
        return cls(np.zeros((len(CLASSES), len(CLASSES)), dtype=np.int64))

    @property
    def total(self) -> int:
        return int(self.matrix.sum())

    @property
    def correct(self) -> int:
        return int(np.trace(self.matrix))

    @property
    def accuracy(self) -> float:
        """Overall accuracy ``trace / sum``; NaN for an empty test set."""
        if self.total == 0:
            return float("nan")
        return self.correct / self.total

    @property
    def producers_accuracy(self) -> dict[int, float]:
        """Per actual class: correctly classified / all samples of that class."""
        return self._ratios(self.matrix.sum(axis=1))

    @property
    def consumers_accuracy(self) -> dict[int, float]:
        """Per predicted class: correctly classified / all predictions of that class."""
        return self._ratios(self.matrix.sum(axis=0))

    @property
    def kappa(self) -> float:
        """Cohen's kappa; NaN for an empty test set or a single-class agreement."""
        total = self.total
        if total == 0:
            return float("nan")
        observed = self.correct / total
        expected = float(
            (self.matrix.sum(axis=0) * self.matrix.sum(axis=1)).sum()
        ) / (total * total)
        if expected == 1.0:
            return float("nan")
        return (observed - expected) / (1.0 - expected)

    def to_dataframe(self) -> pd.DataFrame:
        names = [LandCover(label).name.lower() for label in self.labels]
        frame = pd.DataFrame(
            self.matrix,
            index=pd.Index(names, name="actual"),
            columns=pd.Index(names, name="predicted"),
        )
        return frame

    def _ratios(self, denominators: np.ndarray) -> dict[int, float]:
        diagonal = np.diag(self.matrix)
        return {
            label: (float(diagonal[i]) / denominators[i] if denominators[i] else float("nan"))
            for i, label in enumerate(self.labels)
        }

    def __repr__(self) -> str:
        return f"<ConfusionMatrix total={self.total} accuracy={self.accuracy:.3f}>"
