"""FeedBridge HTTP surface.

Serves the service index, registration indexes and standalone registration
pages synthesized by the ``registration`` package.
"""

from .server import BridgeConfig, RegistrationBridgeServer, run_bridge_server_sync
from .service_index import build_service_index

__all__ = [
    "BridgeConfig",
    "RegistrationBridgeServer",
    "run_bridge_server_sync",
    "build_service_index",
]
