"""Infrastructure services: database access and notification dispatch."""
