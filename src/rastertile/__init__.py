"""rastertile - tile pyramid addressing and remote tile fetching for tiled-raster services."""

__version__ = "0.1.0"
