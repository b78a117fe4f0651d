"""
Bike Trip Wrapped components: ingestion, pricing, stats and config.
"""
