from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from asset_forge.build.config.exceptions import ConfigurationError
from asset_forge.run.pipeline.models import ChangeEvent, ChangeKind
from asset_forge.run.pipeline.watcher import FileWatcher
from .base import BasePipelineTest


class FakeObserver:
    """Records what it was asked to watch; can be made to fail or die."""

    def __init__(self, fail=False, on_start=None):
        self.fail = fail
        self.on_start = on_start
        self.scheduled = []
        self.handler = None
        self.alive = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.scheduled.append((path, recursive))

    def start(self):
        if self.fail:
            raise OSError(28, 'inotify watch limit reached')
        self.alive = True
        if self.on_start is not None:
            self.on_start(self)

    def is_alive(self):
        return self.alive

    def stop(self):
        self.stopped = True
        self.alive = False

    def join(self, timeout=None):
        pass


class TestFileWatcher(BasePipelineTest):

    def setUp(self):
        super().setUp()
        self.app = self.root / 'app'
        self.observers = []
        self.sleeps = []

    def make_watcher(self, failures=0, **kwargs):
        def factory():
            observer = FakeObserver(fail=len(self.observers) < failures)
            self.observers.append(observer)
            return observer
        watcher = FileWatcher(
            observer_factory=factory, sleep=self.sleeps.append, poll_interval=0.01, **kwargs
        )
        self.addCleanup(watcher.stop)
        return watcher

    def test_file_events_become_change_events(self):
        watcher = self.make_watcher()
        events = watcher.watch([self.app])
        handler = self.observers[0].handler
        a, b = str(self.app / 'a.js'), str(self.app / 'b.js')

        handler.dispatch(FileCreatedEvent(a))
        handler.dispatch(FileModifiedEvent(a))
        handler.dispatch(FileMovedEvent(a, b))
        handler.dispatch(FileDeletedEvent(b))

        self.assertEqual([next(events) for _ in range(5)], [
            ChangeEvent(path=self.app / 'a.js', kind=ChangeKind.CREATED),
            ChangeEvent(path=self.app / 'a.js', kind=ChangeKind.MODIFIED),
            ChangeEvent(path=self.app / 'a.js', kind=ChangeKind.REMOVED),
            ChangeEvent(path=self.app / 'b.js', kind=ChangeKind.CREATED),
            ChangeEvent(path=self.app / 'b.js', kind=ChangeKind.REMOVED),
        ])
        self.assertEqual(self.observers[0].scheduled, [(str(self.app), True)])

    def test_directory_and_ignored_events_are_dropped(self):
        watcher = self.make_watcher(ignored=[self.app / 'generated'])
        events = watcher.watch([self.app])
        handler = self.observers[0].handler

        handler.dispatch(DirCreatedEvent(str(self.app / 'sub')))
        handler.dispatch(FileModifiedEvent(str(self.app / '.main.scss.swp')))
        handler.dispatch(FileModifiedEvent(str(self.app / 'generated' / 'elm.js')))
        handler.dispatch(FileModifiedEvent(str(self.app / 'main.scss')))

        self.assertEqual(next(events).path, self.app / 'main.scss')

    def test_start_retries_with_exponential_backoff(self):
        watcher = self.make_watcher(failures=2, retries=5, backoff=0.5)
        watcher.watch([self.app])
        self.assertEqual(self.sleeps, [0.5, 1.0])
        self.assertEqual(len(self.observers), 3)

    def test_gives_up_after_retries(self):
        watcher = self.make_watcher(failures=10, retries=2, backoff=0.5)
        with self.assertRaises(ConfigurationError):
            watcher.watch([self.app])
        self.assertEqual(self.sleeps, [0.5, 1.0])
        self.assertEqual(len(self.observers), 3)

    def test_missing_path_fails_before_watching(self):
        watcher = self.make_watcher()
        with self.assertRaises(ConfigurationError):
            watcher.watch([self.root / 'missing'])
        self.assertEqual(self.observers, [])

    def test_watcher_is_single_use(self):
        watcher = self.make_watcher()
        watcher.watch([self.app])
        with self.assertRaises(RuntimeError):
            watcher.watch([self.app])

    def test_dead_observer_is_restarted(self):
        watcher = self.make_watcher()
        events = watcher.watch([self.app])
        first = self.observers[0]
        first.alive = False

        def report_on_restart(observer):
            observer.handler.dispatch(FileCreatedEvent(str(self.app / 'late.js')))

        original_factory = watcher.observer_factory

        def factory():
            observer = original_factory()
            observer.on_start = report_on_restart
            return observer
        watcher.observer_factory = factory

        self.assertEqual(next(events).path, self.app / 'late.js')
        self.assertEqual(len(self.observers), 2)

    def test_stop_ends_iteration(self):
        watcher = self.make_watcher()
        events = watcher.watch([self.app])
        watcher.stop()
        self.assertEqual(list(events), [])
        self.assertTrue(self.observers[0].stopped)
