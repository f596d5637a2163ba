"""
Exception classes with built-in guidance for the asset pipeline.
"""
import sys
from typing import List, Optional


class AssetForgeError(Exception):
    """Base exception for all pipeline errors."""
    def __init__(self, message: str, error_type: str = None, path: str = None):
        super().__init__(message)
        self.error_type = error_type
        self.path = path
        self.guidance = self._generate_guidance()

    def _get_current_command(self):
        """Get the current command being executed."""
        if len(sys.argv) > 0:
            executable = sys.argv[0].split('/')[-1]
            args = sys.argv[1:]
            if args:
                return f"{executable} {' '.join(args)}"
            else:
                return executable
        return "unknown command"

    def _generate_guidance(self):
        """Override in subclasses to provide specific guidance."""
        return f"""
❌ Build error: {self}
💡 Check your configuration and try again
"""


class ConfigurationError(AssetForgeError):
    """Raised for invalid configuration. Always fatal, and always raised before watching starts."""
    def __init__(self, message: str, path: str = None):
        super().__init__(message, error_type="configuration", path=path)

    def _generate_guidance(self):
        command = self._get_current_command()
        location = f" ({self.path})" if self.path else ""
        return f"""
❌ Configuration error{location}: {self}
💡 Fix the pipeline configuration and re-run: {command}
   Run 'asset-forge status' to see how the configuration is resolved.
"""


class PluginNotFoundError(AssetForgeError):
    """Raised by a registry lookup when no plugin claims an extension."""
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"No plugin registered for extension '{extension}'", error_type="plugin_not_found")

    def _generate_guidance(self):
        return f"""
❌ No plugin handles '{self.extension}' files
💡 Add a plugin for this extension under 'plugins:' or remove the file from the bundle
"""


class PluginExecutionError(AssetForgeError):
    """Raised by a plugin when its compiler or transform fails.

    The transform runner converts this into an artifact in error state, so it
    never escapes the watch loop.
    """
    def __init__(self, message: str, path: str = None, plugin: str = None, diagnostic: str = None):
        self.plugin = plugin
        self.diagnostic = diagnostic or message
        super().__init__(message, error_type="plugin_execution", path=path)

    def _generate_guidance(self):
        return f"""
❌ {self.plugin or 'Plugin'} failed on {self.path or 'unknown file'}
{self.diagnostic}
"""


class DependencyCycleError(AssetForgeError):
    """Raised when adding a dependency edge would close a cycle. The edge is rejected."""
    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}", error_type="dependency_cycle")

    def _generate_guidance(self):
        return f"""
❌ Dependency cycle: {' -> '.join(self.cycle)}
💡 The last import in the chain was ignored; break the cycle to restore it
"""


class BundleBuildError(AssetForgeError):
    """Raised when a bundle cannot be joined because a contributing artifact failed."""
    def __init__(self, message: str, bundle: str, source: Optional[str] = None, diagnostic: str = None):
        self.bundle = bundle
        self.source = source
        self.diagnostic = diagnostic
        super().__init__(message, error_type="bundle_build", path=bundle)

    def _generate_guidance(self):
        detail = f"\n{self.diagnostic}" if self.diagnostic else ""
        return f"""
❌ Bundle '{self.bundle}' was not written: {self}{detail}
💡 The previous output was kept; fix '{self.source}' and save to retry
"""
