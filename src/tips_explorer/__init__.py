"""Block explorer for TIPS bundles: serves on-chain blocks enriched with bundle data."""

__version__ = "0.1.0"
