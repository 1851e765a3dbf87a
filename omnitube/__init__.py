"""OmniTube - unified client for Invidious and Piped front-ends."""

__version__ = "0.1.0"
