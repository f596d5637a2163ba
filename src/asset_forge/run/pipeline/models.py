"""
Pydantic models for the pipeline's runtime state.
"""
import hashlib
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def content_hash(data: bytes) -> str:
    """Hash file content. Artifacts and cache entries are keyed by this value."""
    return hashlib.sha256(data).hexdigest()


class ChangeKind(str, Enum):
    CREATED = 'created'
    MODIFIED = 'modified'
    REMOVED = 'removed'


class ChangeEvent(BaseModel):
    """A single file change reported by the watcher."""
    model_config = ConfigDict(frozen=True)

    path: Path
    kind: ChangeKind


class SourceFile(BaseModel):
    """A file under a watched path. Marked removed rather than deleted while watching."""
    path: Path
    content_hash: Optional[str] = None
    mtime: float = 0.0
    removed: bool = False

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()


class TransformResult(BaseModel):
    """What a plugin hands back: output bytes plus the files the source depends on."""
    content: bytes = b''
    dependencies: List[Path] = Field(default_factory=list)


class BuildArtifact(BaseModel):
    """Transformed output of one SourceFile. Replaced on rebuild, never mutated."""
    model_config = ConfigDict(frozen=True)

    source: Path
    source_hash: str
    plugin: str
    content: bytes = b''
    dependencies: Tuple[Path, ...] = ()
    ok: bool = True
    diagnostic: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return not self.ok

    def is_current(self, source_file: SourceFile) -> bool:
        """True if this artifact was derived from the file's current content."""
        return self.source_hash == source_file.content_hash


class BundleSpec(BaseModel):
    """An output bundle and the ordered sources that feed it."""
    output: Path
    sources: List[Path] = Field(default_factory=list)

    def signature(self, artifacts: Dict[Path, BuildArtifact]) -> Tuple[Tuple[str, str], ...]:
        """Ordered (path, source hash) pairs; equal signatures mean equal output."""
        return tuple((str(path), artifacts[path].source_hash) for path in self.sources)


class BundleOutput(BaseModel):
    """Result of a join. skipped=True means nothing changed and the prior output was kept."""
    output: Path
    content: bytes
    signature: Tuple[Tuple[str, str], ...] = ()
    skipped: bool = False


class BundleState(str, Enum):
    CLEAN = 'clean'
    DIRTY = 'dirty'
    BUILDING = 'building'
    FAILED = 'failed'
