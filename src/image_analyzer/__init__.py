"""Saliency-based subject detection and smart cropping to any aspect ratio."""

__version__ = "1.0.0"
