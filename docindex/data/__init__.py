"""
Background upkeep for the versioned search index store.

This package is responsible for:
* Building the in-memory catalog at startup and rebuilding it periodically.
* Tracking when each mirrored documentation site was last pulled.
* Refreshing mirrored search indexes once a day.
"""
