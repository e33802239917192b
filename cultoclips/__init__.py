"""CultoClips: turn long YouTube videos into short clips."""

__version__ = "0.1.0"
