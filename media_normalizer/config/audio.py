"""
Configuration settings related to audio processing.

The normalizer only ever touches audio in two situations: MP3 streams are
upgraded to AAC, and the AVI repair stage rebuilds the frames of MP3 audio.
Everything else is a bitstream copy.
"""

# ======================================================================================
# Audio Codec Identification
# ======================================================================================

# ffprobe reports MP3 as "mp3"; some legacy AVI muxers expose it as "mp3float".
AUDIO_MP3_CODECS = ("mp3", "mp3float")


# ======================================================================================
# Audio Encoding Parameters
# ======================================================================================

# Target for MP3 upgrades, used by both the audio-only repair and the final transcode.
AAC_ENCODER = "aac"
AAC_BITRATE = "160k"

# The AVI repair stage re-encodes MP3 audio to MP3 to rebuild broken frame headers.
AVI_REPAIR_AUDIO_ENCODER = "libmp3lame"
AVI_REPAIR_AUDIO_BITRATE = "128k"
