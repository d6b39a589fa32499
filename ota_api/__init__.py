"""Expo-style over-the-air update server.

The package serves signed update manifests, rollback and no-update directives,
and the individual assets referenced by a manifest.
"""

__version__ = "0.1.0"
