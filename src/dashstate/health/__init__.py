"""Health payload normalization and polling."""
