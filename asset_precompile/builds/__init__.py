"""Asset build orchestration module.

This module handles:
- Running the external asset build task
- Deciding between manifest skip, cache restore, and rebuild
- Enabling runtime compilation when the build fails

Access submodules directly (asset_precompile.builds.service, etc.) to
avoid circular imports with the cache package.
"""
