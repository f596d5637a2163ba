"""Build tasks for the asset pipeline.

These tasks load the pipeline config, build the plugin registry once, and
hand both to a BuildOrchestrator.
"""

import functools
import logging
import sys

from invoke import task
from invoke.exceptions import Exit

from asset_forge.build.config.exceptions import AssetForgeError
from asset_forge.build.config.loading import load_config
from asset_forge.build.plugins.factory import build_registry
from asset_forge.run.config.logging import bootstrap_logging
from asset_forge.run.pipeline.orchestrator import BuildOrchestrator, BuildReport

logger = logging.getLogger(__name__)


def pipeline_errors(func):
    """Print guidance for pipeline errors and exit non-zero instead of dumping a traceback."""
    @functools.wraps(func)
    def wrapper(ctx, *args, **kwargs):
        try:
            return func(ctx, *args, **kwargs)
        except AssetForgeError as e:
            print(e.guidance, file=sys.stderr)
            raise Exit(code=1)
    return wrapper


def create_orchestrator(config_path=None) -> BuildOrchestrator:
    """Load configuration and wire up an orchestrator for it."""
    config = load_config(config_path)
    registry = build_registry(config)
    return BuildOrchestrator(config, registry)


def print_report(report: BuildReport) -> None:
    for output in report.built:
        print(f"✅ {output}")
    for output in report.skipped:
        print(f"➖ {output} (unchanged)")
    for path, diagnostic in report.diagnostics.items():
        print(f"❌ {path}\n{diagnostic}", file=sys.stderr)
    for output, error in report.failed.items():
        print(f"❌ {output}: {error}", file=sys.stderr)
    for error in report.rejected_edges:
        print(f"⚠️  {error}", file=sys.stderr)


@task(help={
    'config': 'Path to the pipeline config (default: asset-forge.yaml)',
    'verbose': 'Enable debug logging',
})
@pipeline_errors
def build(ctx, config=None, verbose=False):
    """
    Build every bundle once and exit.

    Examples:
        asset-forge build
        asset-forge build --config=site/asset-forge.yaml --verbose
    """
    bootstrap_logging(__name__, level='DEBUG' if verbose else None)
    with create_orchestrator(config) as orchestrator:
        report = orchestrator.build_once()
    print_report(report)
    if not report.ok:
        raise Exit(code=1)


@task(help={
    'config': 'Path to the pipeline config (default: asset-forge.yaml)',
    'verbose': 'Enable debug logging',
})
@pipeline_errors
def watch(ctx, config=None, verbose=False):
    """
    Build, then keep rebuilding as watched files change. Stop with Ctrl-C.
    """
    bootstrap_logging(__name__, level='DEBUG' if verbose else None)
    orchestrator = create_orchestrator(config)
    print(f"👀 Watching {', '.join(str(p) for p in orchestrator.tree.roots)}")
    try:
        orchestrator.watch(on_report=print_report)
    except KeyboardInterrupt:
        orchestrator.stop()
        print("\n🛑 Stopped watching")


@task(help={
    'config': 'Path to the pipeline config (default: asset-forge.yaml)',
})
@pipeline_errors
def status(ctx, config=None):
    """
    Show the registered plugins and which sources feed each bundle.
    """
    bootstrap_logging(__name__)
    with create_orchestrator(config) as orchestrator:
        print("🔌 Plugins:")
        for plugin in orchestrator.registry.plugins():
            print(f"   {plugin.name}: {', '.join(plugin.extensions)}")
        print("📦 Bundles:")
        for output, info in orchestrator.status().items():
            print(f"   {output} [{info['state'].value}]")
            for source in info['sources']:
                print(f"      {source}")
