"""
Asset pipeline task collection.

Usable both from the ``asset-forge`` console script and from a project's own
invoke tasks.py via ``from asset_forge.tasks import namespace``.
"""
from invoke import Collection

from .build.tasks import build as build_tasks

namespace = Collection()

for task in Collection.from_module(build_tasks).tasks.values():
    namespace.add_task(task)
