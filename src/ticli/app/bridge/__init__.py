from ticli.app.bridge.service import Bridge, BridgeContext, load_plugin_descriptor
from ticli.app.bridge.stream import ResponseStream

__all__ = ["Bridge", "BridgeContext", "ResponseStream", "load_plugin_descriptor"]
