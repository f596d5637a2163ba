"""
asset-forge: an incremental asset pipeline.

Watches source directories, runs per-file-type transform plugins, and joins
the results into output bundles.
"""

__version__ = '0.1.0'
