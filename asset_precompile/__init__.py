"""Asset Precompile - cache-aware asset compilation step for deployments.

This package decides whether compiled web assets need to be rebuilt,
restores them from a build cache when sources are unchanged, and
optionally pushes freshly built assets to a remote object store.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
