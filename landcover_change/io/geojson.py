"""GeoJSON loader – training points and analysis regions."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import geopandas as gpd

from landcover_change.exceptions import ConfigurationError
from landcover_change.ops.vector import validate_samples
from landcover_change.types import LABEL_COLUMN, SampleSet


@runtime_checkable
class GeoJsonLoader(Protocol):
    """Protocol for GeoJSON loaders."""

    def load_geojson(
        self,
        source: str | dict,
        *,
        crs: str | None = None,
        **kwargs: Any,
    ) -> gpd.GeoDataFrame:
        ...


class DefaultGeoJsonLoader:
    """Default GeoJSON loader using geopandas."""

    def load_geojson(
        self,
        source: str | dict,
        *,
        crs: str | None = None,
        **kwargs: Any,
    ) -> gpd.GeoDataFrame:
        """Load GeoJSON from a file path, URL, or inline dict.

        Parameters
        ----------
        source : str | dict
            File path / URL to a GeoJSON file, or an inline GeoJSON dict.
        crs : str | None
            Optional CRS to assign (e.g. ``"EPSG:4326"``).  If *None* the
            CRS is inferred from the data (GeoJSON is always WGS 84).
        """
        if isinstance(source, dict):
            features = source.get("features", [source])
            gdf = gpd.GeoDataFrame.from_features(features)
        else:
            gdf = gpd.read_file(source, **kwargs)

        if crs is not None:
            gdf = gdf.set_crs(crs, allow_override=True)
        elif gdf.crs is None:
            gdf = gdf.set_crs("EPSG:4326")

        return gdf


# Module-level convenience functions using the default loader.
_default = DefaultGeoJsonLoader()


def load_samples(
    source: str | dict,
    *,
    label_column: str = LABEL_COLUMN,
    crs: str | None = None,
    loader: GeoJsonLoader | None = None,
) -> SampleSet:
    """Load labelled training points.

    Raises
    ------
    ConfigurationError
        If a geometry is not a point or a label is outside ``{0, 1, 2}``.
    """
    gdf = (loader or _default).load_geojson(source, crs=crs)
    validate_samples(gdf, label_column=label_column)
    gdf[label_column] = gdf[label_column].astype(int)
    return gdf


def load_region(
    source: str | dict,
    *,
    crs: str | None = None,
    loader: GeoJsonLoader | None = None,
) -> gpd.GeoDataFrame:
    """Load the analysis region, dissolved into a single-row GeoDataFrame."""
    gdf = (loader or _default).load_geojson(source, crs=crs)
    if gdf.empty:
        raise ConfigurationError("The region source holds no features")
    polygonal = gdf.geometry.geom_type.isin(["Polygon", "MultiPolygon"])
    if not polygonal.all():
        raise ConfigurationError(
            f"Region geometries must be polygons, got {sorted(set(gdf.geom_type))}"
        )
    return gpd.GeoDataFrame(geometry=[gdf.union_all()], crs=gdf.crs)
