"""Geospatial AOI matching.

- aoi: AOI ingestion, validation and bounding box
- coords: (lon, lat) → (lat, lon) conversion for rendering
- coverage: Footprint overlap scoring and tile matching
- synthesis: Synthetic fallback tiles
- templates: Per-satellite footprint and metadata templates
- filters: Date / satellite filtering, confidence tiers, summaries
- matcher: GeoMatcher analysis session
"""
