"""
On-disk artifact cache keyed by source content hash.

An entry records the hash of every input the artifact was derived from (the
source plus its transitive dependencies). A lookup only hits when all of
those inputs still hash the same on disk.
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .fs import atomic_write
from .models import BuildArtifact, content_hash

logger = logging.getLogger(__name__)


class BuildCache:
    """Successful artifacts stored under ``<directory>/<plugin>/<key>.{bin,json}``."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _key(self, source: Path, source_hash: str) -> str:
        return hashlib.sha256(f"{source}\0{source_hash}".encode()).hexdigest()

    def _paths(self, plugin: str, source: Path, source_hash: str):
        base = self.directory / plugin / self._key(source, source_hash)
        return base.with_suffix('.bin'), base.with_suffix('.json')

    @staticmethod
    def _hash_file(path: Path) -> Optional[str]:
        try:
            with open(path, 'rb') as f:
                return content_hash(f.read())
        except OSError:
            return None

    def lookup(self, plugin: str, source: Path, source_hash: str) -> Optional[BuildArtifact]:
        """Return the cached artifact if it and all of its inputs are unchanged."""
        content_path, meta_path = self._paths(plugin, source, source_hash)
        try:
            with open(meta_path, 'r') as f:
                meta = json.load(f)
            with open(content_path, 'rb') as f:
                content = f.read()
        except (OSError, ValueError):
            return None
        if not isinstance(meta, dict) or not isinstance(meta.get('inputs', {}), dict):
            logger.debug(f"Ignoring malformed cache entry {meta_path}")
            return None

        for input_path, input_hash in meta.get('inputs', {}).items():
            if self._hash_file(Path(input_path)) != input_hash:
                logger.debug(f"Cache miss for {source}: {input_path} changed")
                return None

        logger.debug(f"Cache hit for {source}")
        return BuildArtifact(
            source=source,
            source_hash=source_hash,
            plugin=plugin,
            content=content,
            dependencies=tuple(Path(p) for p in meta.get('dependencies', [])),
        )

    def store(self, artifact: BuildArtifact, inputs: Dict[Path, str]) -> None:
        """Cache a successful artifact. ``inputs`` maps dependency paths to their hashes."""
        if artifact.is_error:
            return
        content_path, meta_path = self._paths(artifact.plugin, artifact.source, artifact.source_hash)
        meta = {
            'source': str(artifact.source),
            'dependencies': [str(p) for p in artifact.dependencies],
            'inputs': {str(p): h for p, h in inputs.items()},
        }
        try:
            content_path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(content_path, artifact.content)
            atomic_write(meta_path, json.dumps(meta, indent=2).encode())
        except OSError as e:
            logger.warning(f"Could not write cache entry for {artifact.source}: {e}")
