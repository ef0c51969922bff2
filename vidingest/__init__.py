"""Media upload and processing pipeline for a video-hosting backend."""

__version__ = "0.1.0"
