"""
Configuration Module

Provides chain topology types, deployer settings and loading utilities.
"""

from .types import (
    VALSET_ANON,
    NetworkConfiguration,
    NodeEndpoint,
    ProvisionedNode,
    Validator,
    ValidatorSet,
    ValidatorSlot,
)
from .settings import DeployerSettings, PollSettings, load_settings
from .loader import ChainConfigStore, load_validator_set

__all__ = [
    # Chain types
    "VALSET_ANON",
    "NetworkConfiguration",
    "NodeEndpoint",
    "ProvisionedNode",
    "Validator",
    "ValidatorSet",
    "ValidatorSlot",
    # Settings
    "DeployerSettings",
    "PollSettings",
    "load_settings",
    # Utilities
    "ChainConfigStore",
    "load_validator_set",
]
