"""
reaper-video-fx - Process a video's soundtrack through REAPER.

Drives a running REAPER instance through its file-based bridge extension:
audio extraction → track clear → audio load → track render → remux with
the original video.
"""

__version__ = "0.1.0"
