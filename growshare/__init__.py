"""GrowShare plot-sharing marketplace API."""
