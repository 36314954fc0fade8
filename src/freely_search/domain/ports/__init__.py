from .magnet_resolver import DetailMagnetResolverPort
from .plugin_registry import PluginRegistryPort

__all__ = [
    "DetailMagnetResolverPort",
    "PluginRegistryPort",
]
