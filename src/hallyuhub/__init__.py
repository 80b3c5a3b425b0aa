"""HallyuHub - K-culture catalog enrichment service."""

__version__ = "1.0.0"
