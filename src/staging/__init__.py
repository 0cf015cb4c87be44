"""Staging area management and remote snapshot transports."""

from src.staging.staging_manager import StagingManager
from src.staging.transport import DEMO_FEATURES, DemoTransport, DirectoryTransport, RemoteTransport

__all__ = [
    'StagingManager',
    'RemoteTransport',
    'DirectoryTransport',
    'DemoTransport',
    'DEMO_FEATURES',
]
