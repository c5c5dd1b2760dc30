"""
Configuration settings related to video processing.

This module defines the recognized input extensions, the codec family tables
used by the decision engine, and the encoder parameters for the final HEVC
transcode.
"""

# --- General Video Settings ---
VIDEO_EXTENSIONS = (".avi", ".mp4", ".mkv")
OUTPUT_EXTENSION = ".mkv"

# --- Codec Families ---
# Codec names are compared lowercased. The MPEG-4 Part 2 family is also matched
# on the FourCC tag because ffprobe reports Xvid/DivX streams as plain "mpeg4".
HEVC_CODECS = ("hevc", "h265")
EFFICIENT_CODECS = ("vp9", "av1")
H264_CODECS = ("h264", "avc1")
MPEG4_FAMILY_CODECS = (
    "mpeg4", "msmpeg4v1", "msmpeg4v2", "msmpeg4v3", "msmpeg4", "xvid", "divx",
)
MPEG4_FAMILY_TAGS = ("xvid", "divx", "dx50", "div3", "fmp4")

# --- Upscale Settings ---
UPSCALE_HEIGHT_THRESHOLD = 720
UPSCALE_TARGET_WIDTH = 1280
# Height "-2" keeps the aspect ratio and rounds to an even number of lines.
UPSCALE_FILTER = f"scale={UPSCALE_TARGET_WIDTH}:-2:flags=lanczos"

# --- Encoder Settings ---
HEVC_ENCODER = "hevc_nvenc"
HEVC_QUALITY = 20
HEVC_PRESET = "p7"
HEVC_PROFILE = "main10"
HEVC_PIX_FMT = "p010le"

# Software encoder used when the GPU encoder is unavailable.
FALLBACK_HEVC_ENCODER = "libx265"
FALLBACK_HEVC_PRESET = "slow"
FALLBACK_HEVC_PIX_FMT = "yuv420p10le"

# --- Bitstream Filters ---
BFRAME_UNPACK_BSF = "mpeg4_unpack_bframes"
