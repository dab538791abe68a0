"""Route modules for the Esmero API.

All routes are versioned and live in the v1/ subdirectory.
"""
