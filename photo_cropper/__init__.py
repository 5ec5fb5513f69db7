"""Pan/zoom photo cropper: frame a photo, then extract the framed region."""

__version__ = "1.0.0"
