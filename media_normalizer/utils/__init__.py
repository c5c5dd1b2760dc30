"""
Utilities Package for the Media Normalizer.

Modules:
    - ffmpeg_utils.py: Resolves the ffmpeg/ffprobe executables and runs
      external commands with command and error logging.
    - format_utils.py: Formats sizes and durations for log messages.
"""
