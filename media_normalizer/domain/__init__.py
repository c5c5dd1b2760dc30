"""
This package contains the core domain models of the Media Normalizer.

The domain layer represents the concepts of the normalization pipeline
(containers, codec families, action plans, artifacts and outcomes)
independently of ffmpeg, the filesystem layout or the command line.

Modules:
    exceptions.py: The error taxonomy (inspection, stage, transcode and
                   filesystem failures).
    media.py: Container kinds, codec families and the `MediaProperties`
              snapshot produced by the inspector.
    plan.py: The `Action` variants, `Artifact` handles, `StageResult` and the
             per-file / per-batch outcome records.
"""
