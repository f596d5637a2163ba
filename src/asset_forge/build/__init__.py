"""
Build-time side of asset-forge: configuration, plugins, and tasks.
"""
