"""
OmniLens - CI workflow health monitoring core.

Builds workflow trigger graphs from workflow configuration files and classifies
per-workflow health from daily run history.
"""

__version__ = "1.0.0"
