"""Supervised land-cover classification – train, predict and evaluate.

Training and evaluation::

    model = train(features, bands, config=ClassifierConfig(num_trees=50), seed=0)
    classified = predict(model, grid)
    matrix, eval_model = assess_accuracy(features, bands, seed=0)

``assess_accuracy`` draws its own 70/30 split and trains a separate
model on the 70 % share, so the reported accuracy is measured on
samples that model never saw.
"""

from __future__ import annotations

import logging
from typing import Sequence, Union

import numpy as np
import xarray as xr

from landcover_change.config import ClassifierConfig
from landcover_change.exceptions import DegenerateTrainingSet
from landcover_change.model.trained import ConfusionMatrix, TrainedModel
from landcover_change.ops.raster import (
    BANDS_DIM,
    copy_georef,
    select_bands,
    stack_to_samples,
    unstack_from_samples,
)
from landcover_change.ops.vector import to_feature_matrix
from landcover_change.types import CLASSES, LABEL_COLUMN, ClassifiedRaster, Raster, SampleSet

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.Generator, None]

# =====================================================================
# train  –  fit a decision forest on feature vectors
# =====================================================================


def train(
    features: SampleSet,
    bands: Sequence[str],
    *,
    config: ClassifierConfig | None = None,
    seed: int | None = None,
    label_column: str = LABEL_COLUMN,
) -> TrainedModel:
    """Train a random-forest classifier on *features*.

    Parameters
    ----------
    features : SampleSet
        Feature vectors from :func:`~landcover_change.ops.vector.extract_samples`.
    bands : sequence of str
        Feature columns, in the order the model will read them from grids.
    config : ClassifierConfig | None
        Forest size and split-variable setting.
    seed : int | None
        Random state of the forest.

    Raises
    ------
    DegenerateTrainingSet
        If *features* is empty or holds a single class.
    """
    from landcover_change.model.sklearn import build_random_forest_estimator, sklearn_version

    config = config or ClassifierConfig()
    X, y = to_feature_matrix(features, bands, label_column=label_column)

    if X.shape[0] == 0:
        raise DegenerateTrainingSet("Cannot train a classifier on an empty training set")
    classes = np.unique(y)
    if classes.size < 2:
        raise DegenerateTrainingSet(
            f"Training set holds a single class ({int(classes[0])}); "
            "at least two classes are required"
        )

    estimator = build_random_forest_estimator(
        max_variables=config.max_variables,
        num_trees=config.num_trees,
        seed=seed,
    )
    estimator.fit(X, y)

    logger.info(
        "Trained %d-tree forest on %d samples, classes %s",
        config.num_trees,
        X.shape[0],
        classes.tolist(),
    )
    return TrainedModel(
        estimator=estimator,
        bands=list(bands),
        classes=classes.tolist(),
        n_samples=X.shape[0],
        hyperparameters={
            "num_trees": config.num_trees,
            "max_variables": config.max_variables,
            "seed": seed,
        },
        framework_version=sklearn_version(),
    )


# =====================================================================
# predict  –  classify every pixel of a grid
# =====================================================================


def predict(model: TrainedModel, grid: Raster) -> ClassifiedRaster:
    """Apply *model* to every pixel of *grid*.

    The model's training bands are selected from *grid* by name; a pixel
    with no-data in any of them stays no-data.  Dask-backed grids are
    classified chunk by chunk.

    Raises
    ------
    BandNotAvailable
        If *grid* lacks a band the model was trained on.
    """
    import dask.array as da_mod

    features = select_bands(grid, model.bands)
    stacked = stack_to_samples(features, feature_dim=BANDS_DIM)

    if isinstance(stacked.data, da_mod.Array):
        raw = stacked.data.rechunk({1: -1})
        result_arr = da_mod.map_blocks(
            model.predict_samples,
            raw,
            dtype=np.float32,
            drop_axis=1,
        )
    else:
        result_arr = model.predict_samples(stacked.values)

    result = xr.DataArray(result_arr, dims=["samples"])
    classified = unstack_from_samples(result, features, feature_dim=BANDS_DIM)
    classified = classified.astype(np.float32)
    classified.name = "classification"
    return copy_georef(classified, grid)


# =====================================================================
# evaluate / accuracy assessment
# =====================================================================


def evaluate(
    model: TrainedModel,
    test_features: SampleSet,
    *,
    label_column: str = LABEL_COLUMN,
) -> ConfusionMatrix:
    """Classify held-out feature vectors and tabulate actual × predicted."""
    from sklearn.metrics import confusion_matrix

    X, y = to_feature_matrix(test_features, model.bands, label_column=label_column)
    complete = ~np.isnan(X).any(axis=1)
    X, y = X[complete], y[complete]
    if X.shape[0] == 0:
        logger.warning("Evaluating on an empty test set")
        return ConfusionMatrix.empty()

    predicted = model.predict_samples(X).astype(np.int64)
    matrix = confusion_matrix(y, predicted, labels=list(CLASSES))
    return ConfusionMatrix(matrix)


def split_train_test(
    features: SampleSet,
    *,
    threshold: float = 0.7,
    seed: SeedLike = None,
) -> tuple[SampleSet, SampleSet]:
    """Partition *features* by a uniform draw per sample.

    Samples whose draw is ``>= threshold`` go to the test set.  *seed*
    may be an int or a :class:`numpy.random.Generator`; passing the same
    generator to successive calls yields fresh, independent partitions.
    """
    rng = np.random.default_rng(seed)
    draws = rng.random(len(features))
    is_test = draws >= threshold
    return features.loc[~is_test].copy(), features.loc[is_test].copy()


def assess_accuracy(
    features: SampleSet,
    bands: Sequence[str],
    *,
    config: ClassifierConfig | None = None,
    seed: SeedLike = None,
    label_column: str = LABEL_COLUMN,
) -> tuple[ConfusionMatrix, TrainedModel]:
    """Hold-out accuracy of a forest trained on a random 70 % of *features*.

    Returns the confusion matrix and the evaluation model, which is
    distinct from any production model trained on the full set.

    Raises
    ------
    DegenerateTrainingSet
        If the training share is empty or holds a single class.
    """
    config = config or ClassifierConfig()
    rng = np.random.default_rng(seed)
    train_set, test_set = split_train_test(
        features, threshold=config.test_fraction_threshold, seed=rng
    )
    model_seed = int(rng.integers(0, 2**31 - 1))
    eval_model = train(
        train_set, bands, config=config, seed=model_seed, label_column=label_column
    )
    matrix = evaluate(eval_model, test_set, label_column=label_column)
    logger.info(
        "Accuracy on %d held-out samples (%d used for training): %.3f",
        len(test_set),
        len(train_set),
        matrix.accuracy,
    )
    return matrix, eval_model
