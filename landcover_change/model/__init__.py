"""Model sub-package – random-forest land-cover classification.

Public API
----------
* :class:`TrainedModel` – fitted forest plus its band list
* :class:`ConfusionMatrix` – actual × predicted counts and accuracies

Operations:

* :func:`train` – fit a forest on feature vectors
* :func:`predict` – classify every pixel of a grid
* :func:`evaluate` – confusion matrix on held-out feature vectors
* :func:`split_train_test` – random 70/30 partition
* :func:`assess_accuracy` – split, train an evaluation model, evaluate
"""

from landcover_change.model.trained import ConfusionMatrix, TrainedModel
from landcover_change.model.base import (
    assess_accuracy,
    evaluate,
    predict,
    split_train_test,
    train,
)

__all__ = [
    "ConfusionMatrix",
    "TrainedModel",
    "assess_accuracy",
    "evaluate",
    "predict",
    "split_train_test",
    "train",
]
