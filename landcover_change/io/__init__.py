"""I/O sub-package – training points, analysis regions and raster files."""

from landcover_change.io.geojson import GeoJsonLoader, load_region, load_samples
from landcover_change.io.raster import load_grid

__all__ = [
    "GeoJsonLoader",
    "load_grid",
    "load_region",
    "load_samples",
]
