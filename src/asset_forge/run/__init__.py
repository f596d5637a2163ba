"""
Runtime side of asset-forge: the pipeline engine and logging.
"""
