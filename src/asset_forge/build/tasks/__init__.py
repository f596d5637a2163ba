"""
Asset pipeline task modules.

Collected into a namespace by asset_forge.tasks using Collection.from_module().
"""
