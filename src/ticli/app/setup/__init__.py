from ticli.app.setup.service import SetupResult, SetupService

__all__ = ["SetupResult", "SetupService"]
