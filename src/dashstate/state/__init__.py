"""State layer.

The single source of truth for the UI: an immutable :class:`AppState`
snapshot, the closed set of actions that change it, and the pure reducer
folding one into the other.
"""
