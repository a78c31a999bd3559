from ticli.app.sdk.service import SDKInfo, SDKReport, SDKService, default_install_location

__all__ = ["SDKInfo", "SDKReport", "SDKService", "default_install_location"]
