"""scikit-learn backend – estimator builder for the classifier layer.

This module is **internal**.  Users should call :func:`train`,
:func:`predict` and :func:`evaluate` from ``landcover_change.model.base``.
"""

from __future__ import annotations

from typing import Any

from landcover_change.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# max_variables mapping  (config value → sklearn max_features)
# ---------------------------------------------------------------------------

_MAX_VARIABLES_MAP: dict[str, Any] = {
    "all": None,       # use all features
    "sqrt": "sqrt",
    "log2": "log2",
    "onethird": 1 / 3,
}


def _resolve_max_features(max_variables: int | str) -> Any:
    """Convert the ``max_variables`` setting to sklearn's ``max_features``."""
    if isinstance(max_variables, bool):
        raise TypeError("max_variables must be int or str, got bool")
    if isinstance(max_variables, int):
        return max_variables
    if isinstance(max_variables, str):
        if max_variables not in _MAX_VARIABLES_MAP:
            raise ConfigurationError(
                f"Unknown max_variables value {max_variables!r}. "
                f"Expected an integer or one of {list(_MAX_VARIABLES_MAP)}"
            )
        return _MAX_VARIABLES_MAP[max_variables]
    raise TypeError(f"max_variables must be int or str, got {type(max_variables)}")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def build_random_forest_estimator(
    *,
    max_variables: int | str = "sqrt",
    num_trees: int = 50,
    seed: int | None = None,
) -> Any:
    """Build an sklearn bagged decision-forest classifier.

    Parameters
    ----------
    max_variables
        Mapped to sklearn ``max_features`` (features tried per split).
    num_trees
        Mapped to sklearn ``n_estimators``.
    seed
        Mapped to sklearn ``random_state``.
    """
    from sklearn.ensemble import RandomForestClassifier

    return RandomForestClassifier(
        n_estimators=num_trees,
        criterion="gini",
        max_features=_resolve_max_features(max_variables),
        bootstrap=True,
        random_state=seed,
    )


def sklearn_version() -> str:
    import sklearn

    return sklearn.__version__
