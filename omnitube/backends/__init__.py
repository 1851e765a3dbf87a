"""Video backends for OmniTube.

Each supported front-end API (Invidious, Piped) has an adapter that
implements ``VideosAPI`` and normalizes responses into ``omnitube.models``.
See omnitube/backends/base.py for the contract.
"""

from omnitube.backends.base import CAPABILITIES, VideosAPI
from omnitube.backends.invidious import InvidiousAPI
from omnitube.backends.piped import PipedAPI
from omnitube.backends.registry import BackendRegistry, capabilities_for, create_registry

__all__ = [
    "CAPABILITIES",
    "VideosAPI",
    "InvidiousAPI",
    "PipedAPI",
    "BackendRegistry",
    "capabilities_for",
    "create_registry",
]
