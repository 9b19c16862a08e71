"""Grid operations – raster algebra, sampling, change detection, overlay and area."""
