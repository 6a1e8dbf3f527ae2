"""
Process configuration: the trellis.toml manifest and TRELLIS_* environment.
"""

from trellis.core.environment import TrellisEnv, get_trellis_env, is_production
from trellis.core.manifest import PanelManifest, load_manifest, load_manifest_or_default

__all__ = [
    "TrellisEnv",
    "get_trellis_env",
    "is_production",
    "PanelManifest",
    "load_manifest",
    "load_manifest_or_default",
]
