"""Image-generation provider routing and job lifecycle core."""

__version__ = "0.1.0"
