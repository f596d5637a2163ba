from asset_forge.run.pipeline.cache import BuildCache
from asset_forge.run.pipeline.models import BuildArtifact, content_hash
from .base import BasePipelineTest


class TestBuildCache(BasePipelineTest):

    def setUp(self):
        super().setUp()
        self.cache = BuildCache(self.root / 'cache')
        self.main = self.write('app/main.up', 'main')
        self.util = self.write('app/util.up', 'util')
        self.artifact = BuildArtifact(
            source=self.main, source_hash=content_hash(b'main'), plugin='upper',
            content=b'MAIN', dependencies=(self.util,),
        )

    def test_round_trip(self):
        self.cache.store(self.artifact, {self.util: content_hash(b'util')})
        hit = self.cache.lookup('upper', self.main, content_hash(b'main'))
        self.assertEqual(hit, self.artifact)

    def test_changed_input_misses(self):
        self.cache.store(self.artifact, {self.util: content_hash(b'util')})
        self.util.write_text('changed')
        self.assertIsNone(self.cache.lookup('upper', self.main, content_hash(b'main')))

    def test_different_source_hash_misses(self):
        self.cache.store(self.artifact, {})
        self.assertIsNone(self.cache.lookup('upper', self.main, content_hash(b'other')))

    def test_entries_are_per_plugin(self):
        self.cache.store(self.artifact, {})
        self.assertIsNone(self.cache.lookup('sass', self.main, content_hash(b'main')))

    def test_error_artifacts_are_not_stored(self):
        failed = self.artifact.model_copy(update={'ok': False, 'diagnostic': 'x'})
        self.cache.store(failed, {})
        self.assertIsNone(self.cache.lookup('upper', self.main, content_hash(b'main')))

    def test_malformed_entry_is_a_miss(self):
        self.cache.store(self.artifact, {})
        _, meta_path = self.cache._paths('upper', self.main, content_hash(b'main'))
        for text in ('[]', '"x"', '{"inputs": []}'):
            with self.subTest(meta=text):
                meta_path.write_text(text)
                self.assertIsNone(self.cache.lookup('upper', self.main, content_hash(b'main')))
