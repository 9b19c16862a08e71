"""Overlay engine – boolean masks over aligned grids.

Masks are float grids: ``1.0`` true, ``0.0`` false, NaN no-data.  Every
logical operation yields no-data where any operand is no-data, so gaps
carry through to the area totals instead of being read as "false".
"""

from __future__ import annotations

import numpy as np
import xarray as xr

from landcover_change.config import OverlayThresholds
from landcover_change.ops.raster import assert_aligned, copy_georef
from landcover_change.types import ClassifiedRaster, LandCover, MaskRaster, Raster

DEFORESTED = "deforested"
BURNED = "burned"
OPEN_LAND = "open_land"
DEFORESTED_AND_BURNED = "deforested_and_burned"
OPEN_AFTER_DEFORESTATION = "open_after_deforestation"
HIGH_RISK_EXPANSION = "high_risk_expansion"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def predicate(condition: xr.DataArray, *operands: Raster, name: str | None = None) -> MaskRaster:
    """Turn a boolean *condition* into a mask, no-data where any operand is NaN."""
    valid = operands[0].notnull()
    for operand in operands[1:]:
        valid = valid & operand.notnull()
    mask = condition.astype(np.float32).where(valid)
    mask.name = name
    return copy_georef(mask, operands[0])


def class_equals(grid: ClassifiedRaster, label: int, *, name: str | None = None) -> MaskRaster:
    """Pixels of class *label*."""
    return predicate(grid == int(label), grid, name=name)


def less_than(grid: Raster, threshold: float, *, name: str | None = None) -> MaskRaster:
    """Pixels strictly below *threshold*."""
    return predicate(grid < threshold, grid, name=name)


def greater_than(grid: Raster, threshold: float, *, name: str | None = None) -> MaskRaster:
    """Pixels strictly above *threshold*."""
    return predicate(grid > threshold, grid, name=name)


# ---------------------------------------------------------------------------
# Logical combination
# ---------------------------------------------------------------------------


def logical_and(*masks: MaskRaster, name: str | None = None) -> MaskRaster:
    """Pixel-wise AND of aligned masks.

    Raises
    ------
    GridMismatch
        If the masks are not aligned.
    """
    _check_operands(masks)
    condition = masks[0] == 1
    for mask in masks[1:]:
        condition = condition & (mask == 1)
    return predicate(condition, *masks, name=name)


def logical_or(*masks: MaskRaster, name: str | None = None) -> MaskRaster:
    """Pixel-wise OR of aligned masks."""
    _check_operands(masks)
    condition = masks[0] == 1
    for mask in masks[1:]:
        condition = condition | (mask == 1)
    return predicate(condition, *masks, name=name)


def logical_not(mask: MaskRaster, *, name: str | None = None) -> MaskRaster:
    """Pixel-wise negation."""
    return predicate(mask != 1, mask, name=name)


# ---------------------------------------------------------------------------
# Named conditions
# ---------------------------------------------------------------------------


def deforested(
    earlier: ClassifiedRaster,
    later: ClassifiedRaster,
    *,
    from_class: int = LandCover.FOREST,
    to_class: int = LandCover.NON_FOREST,
) -> MaskRaster:
    """Pixels that were *from_class* in the earlier epoch and *to_class* later."""
    return logical_and(
        class_equals(earlier, from_class),
        class_equals(later, to_class),
        name=DEFORESTED,
    )


def burned(fire_intensity: Raster, threshold: float = 10.0) -> MaskRaster:
    """Pixels whose fire intensity exceeds *threshold*."""
    return greater_than(fire_intensity, threshold, name=BURNED)


def open_land(
    ndvi: Raster,
    nbr: Raster,
    *,
    ndvi_threshold: float = 0.5,
    nbr_threshold: float = 0.1,
) -> MaskRaster:
    """Sparsely vegetated land: NDVI and NBR both below their thresholds."""
    return logical_and(
        less_than(ndvi, ndvi_threshold),
        less_than(nbr, nbr_threshold),
        name=OPEN_LAND,
    )


def overlay_conditions(
    earlier: ClassifiedRaster,
    later: ClassifiedRaster,
    *,
    ndvi: Raster,
    nbr: Raster,
    fire_intensity: Raster,
    thresholds: OverlayThresholds | None = None,
) -> dict[str, MaskRaster]:
    """Evaluate every named condition of the change analysis.

    Parameters
    ----------
    earlier, later : ClassifiedRaster
        Land-cover classification of the two epochs.
    ndvi, nbr : Raster
        Index grids of the later epoch.
    fire_intensity : Raster
        Fire radiative power (or another intensity) over the fire period.
    thresholds : OverlayThresholds | None
        Predicate thresholds; defaults to :class:`OverlayThresholds`.

    Returns
    -------
    dict[str, MaskRaster]
        ``deforested``, ``burned``, ``open_land``, ``deforested_and_burned``,
        ``open_after_deforestation`` and ``high_risk_expansion``.
    """
    thresholds = thresholds or OverlayThresholds()
    assert_aligned(earlier, later, ndvi, nbr, fire_intensity)

    deforested_mask = deforested(earlier, later)
    burned_mask = burned(fire_intensity, thresholds.burn_threshold)
    open_mask = open_land(
        ndvi,
        nbr,
        ndvi_threshold=thresholds.ndvi_threshold,
        nbr_threshold=thresholds.nbr_threshold,
    )
    return {
        DEFORESTED: deforested_mask,
        BURNED: burned_mask,
        OPEN_LAND: open_mask,
        DEFORESTED_AND_BURNED: logical_and(
            deforested_mask, burned_mask, name=DEFORESTED_AND_BURNED
        ),
        OPEN_AFTER_DEFORESTATION: logical_and(
            deforested_mask, open_mask, name=OPEN_AFTER_DEFORESTATION
        ),
        HIGH_RISK_EXPANSION: logical_and(
            deforested_mask, burned_mask, open_mask, name=HIGH_RISK_EXPANSION
        ),
    }


def _check_operands(masks: tuple[MaskRaster, ...]) -> None:
    if not masks:
        raise ValueError("At least one mask is required")
    assert_aligned(*masks)
