"""Provider routing and fallback orchestration for narrative content generation."""

__version__ = "0.1.0"
