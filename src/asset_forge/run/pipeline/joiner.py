"""
Bundle joiner: concatenates artifacts in declared order and writes the bundle.
"""
import logging
from pathlib import Path
from typing import Dict

from asset_forge.build.config.exceptions import BundleBuildError
from .fs import atomic_write
from .models import BuildArtifact, BundleOutput, BundleSpec

logger = logging.getLogger(__name__)


class BundleJoiner:
    """Joins bundles and remembers the last successful join of each one."""

    def __init__(self):
        self._last: Dict[Path, BundleOutput] = {}

    @staticmethod
    def join(spec: BundleSpec, artifacts: Dict[Path, BuildArtifact]) -> bytes:
        """Concatenate non-empty artifacts in the spec's order, each ending in a newline."""
        pieces = []
        for source in spec.sources:
            content = artifacts[source].content
            if not content:
                continue
            pieces.append(content if content.endswith(b'\n') else content + b'\n')
        return b''.join(pieces)

    def rebuild(self, spec: BundleSpec, artifacts: Dict[Path, BuildArtifact]) -> BundleOutput:
        """
        Join and write one bundle.

        If no contributing artifact changed since the last successful join,
        nothing is written and the prior output is returned with skipped=True.

        Raises:
            BundleBuildError: If a contributing artifact is missing or in
                error state. Nothing is written in that case.
        """
        for source in spec.sources:
            artifact = artifacts.get(source)
            if artifact is None:
                raise BundleBuildError(
                    f"No artifact for {source}", bundle=str(spec.output), source=str(source)
                )
            if artifact.is_error:
                raise BundleBuildError(
                    f"{source} failed to build",
                    bundle=str(spec.output),
                    source=str(source),
                    diagnostic=artifact.diagnostic,
                )

        signature = spec.signature(artifacts)
        last = self._last.get(spec.output)
        if last is not None and last.signature == signature and spec.output.exists():
            logger.debug(f"{spec.output} unchanged, skipping join")
            return last.model_copy(update={'skipped': True})

        content = self.join(spec, artifacts)
        spec.output.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(spec.output, content)
        logger.info(f"Wrote {spec.output} ({len(content)} bytes from {len(spec.sources)} files)")

        output = BundleOutput(output=spec.output, content=content, signature=signature)
        self._last[spec.output] = output
        return output
