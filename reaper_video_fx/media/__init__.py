"""
reaper_video_fx.media - FFmpeg operations around the REAPER round-trip.

- extract_audio: video soundtrack → stereo FLAC for REAPER
- merge_audio_video: original video + rendered track → final file
"""

from __future__ import annotations
