"""
Media Normalizer: converts a directory of legacy video files (AVI, MP4, MKV)
into a uniform HEVC/Matroska library.

Sub-packages:
    config: Constants and the runtime `NormalizerConfig`.
    domain: Media properties, action plans, outcomes and exceptions.
    services: The media engine boundary, inspector, decision engine and
              stage executor.
    pipeline: The per-file orchestrator and the batch driver.
    utils: Command execution and formatting helpers.
"""

__version__ = "1.0.0"
