"""Application layer: sync/merge services and caches."""
