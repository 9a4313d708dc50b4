"""Configuration management for landsat_ndvi.

This module provides dataclass-based configuration objects for composite and
comparison exports, with support for validation and YAML-based configuration files.
"""

from .models import (
    ComparisonConfig,
    CompositeConfig,
    ExportConfig,
)
from .yaml_loader import (
    ConfigurationError,
    load_comparison_config,
    load_composite_config,
)

__all__ = [
    # Dataclasses
    "ExportConfig",
    "CompositeConfig",
    "ComparisonConfig",
    # YAML loading
    "ConfigurationError",
    "load_composite_config",
    "load_comparison_config",
]
