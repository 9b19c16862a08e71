import logging

from landcover_change import (
    LANDSAT8,
    SENTINEL2,
    AnalysisConfig,
    EpochConfig,
    RasterGrid,
    run_change_analysis,
)
from landcover_change.io import load_region
from landcover_change.ops.vector import training_points

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# Composites exported beforehand on one common 30 m UTM 50S grid over Kapuas
# Landsat 8 keeps its provider band names (SR_B2 ... SR_B7) and raw digital numbers
earlier = RasterGrid.load("data/landsat8_2015_median.tif", crs="EPSG:32750")
later = RasterGrid.load("data/sentinel2_2023_median.tif", crs="EPSG:32750")
fire = RasterGrid.load("data/viirs_2023_mean_maxfrp.tif", band_names=["MaxFRP"]).band("MaxFRP")
region = load_region("data/kapuas.geojson")

config = AnalysisConfig(
    earlier=EpochConfig("2015", period=("2015-01-01", "2015-12-31"), sensor=LANDSAT8),
    later=EpochConfig("2023", period=("2023-01-01", "2023-12-31"), sensor=SENTINEL2),
    fire_period=("2023-01-01", "2023-12-31"),
    seed=42,
)

report = run_change_analysis(
    earlier.data,
    later.data,
    fire.data,
    training_points(),
    config,
    region=region,
)

print(f"Accuracy {config.earlier.label}: {report.earlier.accuracy:.3f}")
print(f"Accuracy {config.later.label}: {report.later.accuracy:.3f}")
print(report.later.confusion_matrix.to_dataframe())

for name, hectares in report.areas.items():
    print(f"{name:>26}: {hectares:12.2f} ha")

for label, percent in report.histogram.items():
    print(f"{label}: {percent:5.1f} %")
