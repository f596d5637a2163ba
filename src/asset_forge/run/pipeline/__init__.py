"""
The pipeline engine: watcher, runner, dependency graph, joiner, orchestrator.

Import from the submodules directly, e.g.
``from asset_forge.run.pipeline.orchestrator import BuildOrchestrator``.
"""
