"""
VODPack - on-demand adaptive bitrate packaging.

Probes a media file, extracts its streams, encodes a constant-bitrate video
ladder with two-pass x264, transcodes audio to AAC, fragments everything with
Bento4 and writes a DASH manifest with HLS playlists.
"""

__version__ = "1.0.0"
