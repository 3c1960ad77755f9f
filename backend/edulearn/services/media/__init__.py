"""
Local media handling: validation, metadata and thumbnails
"""

from .core import MediaCandidate, MediaMetadata, Thumbnail
from .metadata import MetadataExtractor
from .thumbnail import ThumbnailGenerator
from .validator import MediaValidator, infer_extension, validate_form

__all__ = [
    'MediaCandidate',
    'MediaMetadata',
    'Thumbnail',
    'MetadataExtractor',
    'ThumbnailGenerator',
    'MediaValidator',
    'infer_extension',
    'validate_form',
]
