"""
Build orchestrator: the top-level driver of the asset pipeline.

One owner thread holds all pipeline state (source tree, dependency graph,
artifacts, bundle states). Watcher threads only hand in ChangeEvents through
``submit()``; transform workers only hand back artifacts through futures.
"""
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from asset_forge.build.config.exceptions import (
    AssetForgeError,
    BundleBuildError,
    DependencyCycleError,
)
from asset_forge.build.config.models import PipelineConfig
from asset_forge.build.plugins.registry import PluginRegistry
from .cache import BuildCache
from .fs import normalize
from .graph import DependencyGraph
from .joiner import BundleJoiner
from .models import BuildArtifact, BundleSpec, BundleState, ChangeEvent, ChangeKind
from .notifier import Notifier
from .runner import TransformRunner
from .sources import SourceTree, plan_bundles, plugin_for
from .watcher import FileWatcher

logger = logging.getLogger(__name__)


class BuildReport(BaseModel):
    """Outcome of one build cycle."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    built: List[Path] = Field(default_factory=list)
    skipped: List[Path] = Field(default_factory=list)
    deferred: List[Path] = Field(default_factory=list)
    failed: Dict[Path, BundleBuildError] = Field(default_factory=dict)
    transformed: List[Path] = Field(default_factory=list)
    discarded: List[Path] = Field(default_factory=list)
    diagnostics: Dict[Path, str] = Field(default_factory=dict)
    rejected_edges: List[DependencyCycleError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        parts = []
        if self.built:
            parts.append(f"built {len(self.built)} bundle(s)")
        if self.skipped:
            parts.append(f"{len(self.skipped)} unchanged")
        if self.failed:
            names = ', '.join(p.name for p in self.failed)
            parts.append(f"{len(self.failed)} failed ({names})")
        if self.deferred:
            parts.append(f"{len(self.deferred)} deferred")
        return '; '.join(parts) or 'nothing to do'


def bundle_outputs(config: PipelineConfig) -> List[Path]:
    """Every output path named in the config, without touching the source tree."""
    return [
        normalize(config.public_path() / output)
        for group in config.files.values()
        for output in group.outputs()
    ]


class BuildOrchestrator:
    """Drives the pipeline.

    Per bundle: DIRTY -> BUILDING -> CLEAN on success, BUILDING -> FAILED on
    a BundleBuildError, FAILED/CLEAN -> DIRTY when a change reaches it. Every
    bundle starts DIRTY so the first build always runs.
    """

    def __init__(self, config: PipelineConfig, registry: PluginRegistry,
                 runner: Optional[TransformRunner] = None,
                 joiner: Optional[BundleJoiner] = None,
                 graph: Optional[DependencyGraph] = None,
                 notifier: Optional[Notifier] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.registry = registry
        self.registry.freeze()

        if runner is None:
            cache = BuildCache(config.resolve(config.cache.directory)) if config.cache.directory else None
            runner = TransformRunner(cache)
        self.runner = runner
        self.joiner = joiner or BundleJoiner()
        self.graph = graph or DependencyGraph()
        self.notifier = notifier or Notifier(config.notifications)
        self.debounce = config.debounce

        ignored = registry.ignored_paths() + bundle_outputs(config)
        if config.cache.directory:
            ignored.append(config.resolve(config.cache.directory))
        self.tree = SourceTree(config.watched_paths(), ignored=ignored)
        self.tree.validate()

        self.bundles: Dict[Path, BundleSpec] = {}
        self.states: Dict[Path, BundleState] = {}
        self.artifacts: Dict[Path, BuildArtifact] = {}

        self._clock = clock
        self._cond = threading.Condition()
        self._pending: Dict[Path, ChangeKind] = {}
        self._generations: Dict[Path, int] = {}
        self._first_pending_at: Optional[float] = None
        self._stopped = False
        self._started = False
        self._executor: Optional[ThreadPoolExecutor] = None

    # -- lifecycle -------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.workers, thread_name_prefix='asset-forge-transform'
            )
        return self._executor

    def start(self) -> None:
        """Scan the watched paths and plan bundles. Every bundle starts DIRTY."""
        if self._started:
            return
        self.tree.scan()
        self.bundles = plan_bundles(self.config, self.tree, self.registry)
        self.states = {output: BundleState.DIRTY for output in self.bundles}
        self._started = True

    def stop(self) -> None:
        """Ask the watch loop to finish after the current cycle."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()

    # -- change intake (any thread) --------------------------------------

    def submit(self, event: ChangeEvent) -> None:
        """Queue a change. Repeated changes to one file collapse into one pending entry."""
        path = normalize(event.path)
        with self._cond:
            self._pending[path] = event.kind
            self._generations[path] = self._generations.get(path, 0) + 1
            if self._first_pending_at is None:
                self._first_pending_at = self._clock()
            self._cond.notify_all()

    def has_pending(self) -> bool:
        with self._cond:
            return bool(self._pending)

    def _generation(self, path: Path) -> int:
        with self._cond:
            return self._generations.get(path, 0)

    def _snapshot_generations(self) -> Dict[Path, int]:
        with self._cond:
            return dict(self._generations)

    # -- build cycles (owner thread) -------------------------------------

    def build_once(self) -> BuildReport:
        """
        Build every bundle.

        The first call transforms every source and joins every bundle.
        Later calls rescan the watched paths, rebuild what changed, and
        re-join every bundle, which is a no-op for unchanged ones.
        """
        if self._started:
            self._rescan()
            for output in self.bundles:
                self._mark_dirty(output)
            return self.process_pending()

        self.start()
        report = BuildReport()
        generations = self._snapshot_generations()
        sources = [f.path for f in self.tree.files() if plugin_for(f.path, self.registry) is not None]
        self._transform(sources, generations, report)
        self._build_dirty(generations, report)
        self.notifier.notify(report)
        return report

    def process_pending(self) -> BuildReport:
        """Run one change cycle over everything submitted so far."""
        self.start()
        with self._cond:
            changes = dict(self._pending)
            generations = dict(self._generations)
            self._pending.clear()
            self._first_pending_at = None

        report = BuildReport()
        changed, membership_changed = self._apply_changes(changes)
        if membership_changed:
            self._replan()

        affected: Set[Path] = set()
        for path in changed:
            affected |= self.graph.invalidate(path)
        for output, spec in self.bundles.items():
            if affected.intersection(spec.sources):
                self._mark_dirty(output)

        to_transform = [p for p in affected if p in self.tree and plugin_for(p, self.registry) is not None]
        if to_transform:
            logger.info(f"Rebuilding {len(to_transform)} file(s) after {len(changes)} change(s)")
        self._transform(to_transform, generations, report)
        self._build_dirty(generations, report)
        self.notifier.notify(report)
        return report

    def _rescan(self) -> None:
        known = {f.path for f in self.tree.files()}
        found = set()
        for root in self.tree.roots:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = [d for d in dirnames if not self.tree.is_ignored(normalize(os.path.join(dirpath, d)))]
                for filename in filenames:
                    path = normalize(os.path.join(dirpath, filename))
                    if not self.tree.is_ignored(path):
                        found.add(path)
        for path in sorted(found):
            self.submit(ChangeEvent(path=path, kind=ChangeKind.MODIFIED if path in known else ChangeKind.CREATED))
        for path in sorted(known - found):
            self.submit(ChangeEvent(path=path, kind=ChangeKind.REMOVED))

    def _mark_dirty(self, output: Path) -> None:
        state = self.states.get(output)
        if state in (None, BundleState.CLEAN, BundleState.FAILED):
            self.states[output] = BundleState.DIRTY

    def _apply_changes(self, changes: Dict[Path, ChangeKind]) -> Tuple[Set[Path], bool]:
        """Update the source tree. Returns (paths whose content changed, bundle membership changed)."""
        changed: Set[Path] = set()
        membership_changed = False
        for path, kind in changes.items():
            if kind == ChangeKind.REMOVED:
                source = self.tree.mark_removed(path)
                if source is not None:
                    self.artifacts.pop(path, None)
                    self.graph.clear_dependencies(path)
                    changed.add(path)
                    membership_changed = True
                continue

            was_live = path in self.tree
            source, content_changed = self.tree.touch(path)
            if source is None:
                continue
            if source.removed or not was_live:
                membership_changed = True
                self.artifacts.pop(path, None)
                self.graph.clear_dependencies(path)
                changed.add(path)
                continue
            artifact = self.artifacts.get(path)
            if content_changed or artifact is None or not artifact.is_current(source):
                changed.add(path)
        return changed, membership_changed

    def _replan(self) -> None:
        planned = plan_bundles(self.config, self.tree, self.registry)
        for output, spec in planned.items():
            previous = self.bundles.get(output)
            if previous is None or previous.sources != spec.sources:
                self._mark_dirty(output)
        self.bundles = planned

    def _transform(self, paths: Iterable[Path], generations: Dict[Path, int], report: BuildReport) -> None:
        """Run transforms level by level; files within a level run concurrently."""
        paths = list(paths)
        if not paths:
            return
        for level in self.graph.levels(paths):
            jobs = {}
            for path in level:
                plugin = plugin_for(path, self.registry)
                source = self.tree.get(path)
                if plugin is None or source is None or source.removed:
                    continue
                future = self._pool().submit(self.runner.run, source.model_copy(), plugin)
                jobs[future] = path
            for future in as_completed(jobs):
                path = jobs[future]
                artifact = future.result()
                if self._generation(path) != generations.get(path, 0):
                    # changed again while in flight; the newer change is still pending
                    logger.debug(f"Discarding stale transform of {path}")
                    report.discarded.append(path)
                    continue
                self._accept(artifact, report)

    def _accept(self, artifact: BuildArtifact, report: BuildReport) -> None:
        path = artifact.source
        source = self.tree.get(path)
        if source is None:
            return
        source.content_hash = artifact.source_hash
        self.artifacts[path] = artifact
        report.transformed.append(path)

        if artifact.is_error:
            report.diagnostics[path] = artifact.diagnostic or 'unknown error'
            return

        report.rejected_edges.extend(self.graph.replace_dependencies(path, artifact.dependencies))
        if self.runner.cache is not None:
            self.runner.cache.store(artifact, self._input_hashes(path))

    def _input_hashes(self, path: Path) -> Dict[Path, str]:
        inputs = {}
        for dep in self.graph.closure(path):
            source = self.tree.get(dep)
            if source is not None and source.content_hash and not source.removed:
                inputs[dep] = source.content_hash
            else:
                inputs[dep] = ''
        return inputs

    def _stale_sources(self, spec: BundleSpec) -> List[Path]:
        stale = []
        for path in spec.sources:
            artifact = self.artifacts.get(path)
            source = self.tree.get(path)
            if artifact is None or source is None or not artifact.is_current(source):
                stale.append(path)
        return stale

    def _build_dirty(self, generations: Dict[Path, int], report: BuildReport) -> None:
        """Join every DIRTY bundle. One bundle failing never stops the others."""
        for output, spec in self.bundles.items():
            if self.states.get(output) != BundleState.DIRTY:
                continue

            stale = self._stale_sources(spec)
            # a newer change is still pending for these; its own cycle transforms them
            superseded = any(self._generation(p) != generations.get(p, 0) for p in stale)
            if stale and not superseded:
                self._transform(stale, generations, report)
                stale = self._stale_sources(spec)
            if stale:
                logger.debug(f"{output} waits for newer changes")
                report.deferred.append(output)
                continue

            self.states[output] = BundleState.BUILDING
            try:
                result = self.joiner.rebuild(spec, self.artifacts)
            except BundleBuildError as e:
                self.states[output] = BundleState.FAILED
                report.failed[output] = e
                logger.error(e.guidance)
                continue

            self.states[output] = BundleState.CLEAN
            if result.skipped:
                report.skipped.append(output)
            else:
                report.built.append(output)

    # -- watch loop --------------------------------------------------------

    def _wait_for_batch(self) -> bool:
        """Block until pending changes have sat for the debounce window. False once stopped."""
        with self._cond:
            while not self._pending and not self._stopped:
                self._cond.wait()
            while not self._stopped:
                remaining = self._first_pending_at + self.debounce - self._clock()
                if remaining <= 0:
                    break
                self._cond.wait(remaining)
            return not self._stopped

    def watch(self, watcher: Optional[FileWatcher] = None,
              on_report: Optional[Callable[[BuildReport], None]] = None) -> None:
        """
        Build, then rebuild on every batch of changes until ``stop()``.

        Raises:
            ConfigurationError: If a watched path is missing or the watcher
                gives up restarting
        """
        watcher = watcher or FileWatcher(
            polling=self.config.watcher.polling,
            retries=self.config.watcher.retries,
            backoff=self.config.watcher.backoff,
            ignored=self.tree.ignored,
        )
        events = watcher.watch(self.tree.roots)
        failure: List[BaseException] = []

        def _feed(stream: Iterator[ChangeEvent]) -> None:
            try:
                for event in stream:
                    self.submit(event)
            except AssetForgeError as e:
                failure.append(e)
            finally:
                self.stop()

        feeder = threading.Thread(target=_feed, args=(events,), name='asset-forge-watcher', daemon=True)
        feeder.start()
        try:
            report = self.build_once()
            if on_report:
                on_report(report)
            while self._wait_for_batch():
                report = self.process_pending()
                if on_report:
                    on_report(report)
        finally:
            watcher.stop()
            feeder.join(timeout=5)
            self.close()
        if failure:
            raise failure[0]

    def status(self) -> Dict[Path, Dict[str, object]]:
        """Bundle plan and current state, for display."""
        self.start()
        return {
            output: {'state': self.states.get(output), 'sources': list(spec.sources)}
            for output, spec in self.bundles.items()
        }
