"""
Root pytest configuration for asset-forge.

Bootstraps logging once for the whole test session.
"""

from asset_forge.run.config.logging import bootstrap_logging

bootstrap_logging('tests')
