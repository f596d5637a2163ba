"""
Pydantic models for the pipeline configuration file.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PathsConfig(BaseModel):
    """Directories the pipeline reads from and writes to."""
    model_config = ConfigDict(extra='forbid')

    watched: List[str] = Field(default_factory=lambda: ['app'])
    public: str = 'public'

    @field_validator('watched')
    @classmethod
    def _at_least_one(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("paths.watched must name at least one directory")
        return value


class OrderConfig(BaseModel):
    """Files pinned to the start or end of a bundle."""
    model_config = ConfigDict(extra='forbid')

    before: List[str] = Field(default_factory=list)
    after: List[str] = Field(default_factory=list)


class FileGroupConfig(BaseModel):
    """One entry under 'files:', e.g. javascripts or stylesheets."""
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    join_to: Union[str, Dict[str, Union[str, List[str]]]] = Field(alias='joinTo')
    order: OrderConfig = Field(default_factory=OrderConfig)

    def outputs(self) -> Dict[str, List[str]]:
        """Map each output path to the glob patterns that feed it.

        A bare string joinTo means every matching file under the watched paths.
        """
        if isinstance(self.join_to, str):
            return {self.join_to: ['**/*']}
        outputs = {}
        for output, patterns in self.join_to.items():
            outputs[output] = [patterns] if isinstance(patterns, str) else list(patterns)
        return outputs


class CacheConfig(BaseModel):
    """Optional artifact cache keyed by source content hash."""
    model_config = ConfigDict(extra='forbid')

    directory: Optional[str] = None


class WatcherConfig(BaseModel):
    """File watcher tuning."""
    model_config = ConfigDict(extra='forbid')

    polling: bool = False
    retries: int = Field(default=5, ge=0)
    backoff: float = Field(default=0.5, gt=0)


class PipelineConfig(BaseModel):
    """The whole pipeline configuration, built once at startup and passed around explicitly."""
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    paths: PathsConfig = Field(default_factory=PathsConfig)
    files: Dict[str, FileGroupConfig] = Field(default_factory=dict)
    plugins: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    notifications: bool = False
    debounce: float = Field(default=0.3, ge=0)
    workers: int = Field(default=4, ge=1)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    root: Path = Field(default_factory=Path.cwd, exclude=True)

    @field_validator('plugins', mode='before')
    @classmethod
    def _empty_plugin_options(cls, value: Any) -> Any:
        # 'sass:' with no options parses as None
        if isinstance(value, dict):
            return {name: (options or {}) for name, options in value.items()}
        return value

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve a configured path against the project root."""
        path = Path(path)
        if path.is_absolute():
            return path
        return self.root / path

    def watched_paths(self) -> List[Path]:
        return [self.resolve(p) for p in self.paths.watched]

    def public_path(self) -> Path:
        return self.resolve(self.paths.public)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root: Optional[Path] = None) -> 'PipelineConfig':
        """Create PipelineConfig from dictionary."""
        if root is not None:
            return cls(**{**data, 'root': root})
        return cls(**data)
