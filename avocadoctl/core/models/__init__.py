"""
Domain models — Pydantic types for avocadoctl.

All models are re-exported here for convenient access:

    from avocadoctl.core.models import Config, Extension, ReleaseDirective, ActionList
"""

from avocadoctl.core.models.action import Action, Receipt
from avocadoctl.core.models.config import (
    AvocadoConfig,
    Config,
    ConfigError,
    ExtConfig,
    HitlConfig,
)
from avocadoctl.core.models.directive import ActionList, DirectiveKind, ReleaseDirective
from avocadoctl.core.models.extension import Extension, ExtensionRelease

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # config.py
    "AvocadoConfig",
    "Config",
    "ConfigError",
    "ExtConfig",
    "HitlConfig",
    # directive.py
    "ActionList",
    "DirectiveKind",
    "ReleaseDirective",
    # extension.py
    "Extension",
    "ExtensionRelease",
]
