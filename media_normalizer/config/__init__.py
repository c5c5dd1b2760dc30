"""
Configuration Package for the Media Normalizer.

This package centralizes the static configuration of the application and the
runtime configuration object that is handed to the batch driver.

This package includes settings for:
- The working directory layout (output and scratch directory names).
- Recognized input extensions and codec families.
- Encoding parameters for every pipeline stage (video and audio).
- Loading of user overrides from `config.user.yaml`.
"""
from .common import NormalizerConfig, load_config

__all__ = ["NormalizerConfig", "load_config"]
