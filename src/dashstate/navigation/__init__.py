"""Navigation history.

Pure stack operations live in :mod:`dashstate.navigation.stack`; the reducer
folds navigation actions through them.
"""
