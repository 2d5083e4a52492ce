"""Catalog loading (roots and node details)."""
