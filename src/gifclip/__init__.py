"""gifclip - Video Clip to GIF/WebM/MP4 Tool.

Cuts a clip out of a downloaded or local video and renders it with
burned-in subtitles. Clip bounds come from either:
1. Manual timestamps (start/end)
2. Dialogue anchors resolved against the subtitle track
"""

__version__ = "0.1.0"
