"""
Core package for the MZO reporting dashboard.

Submodules provide dataset loading, caching, scope enforcement, filtering,
aggregation, and user interface rendering helpers that are orchestrated by
the top-level `app.py`.
"""
