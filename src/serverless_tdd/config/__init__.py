from .loader import find_service_file, load_service_config, load_yaml_config
from .models import PLUGIN_SECTION, FunctionDefinition, PluginConfig, ProviderConfig, ServiceConfig
from .validator import ConfigError

__all__ = [
    "ConfigError",
    "FunctionDefinition",
    "PLUGIN_SECTION",
    "PluginConfig",
    "ProviderConfig",
    "ServiceConfig",
    "find_service_file",
    "load_service_config",
    "load_yaml_config",
]
