"""Images package

Converts raster assets to WebP and publishes originals plus derivatives to
the configured object store.
"""
