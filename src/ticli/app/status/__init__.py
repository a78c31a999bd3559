from ticli.app.status.service import StatusReport, StatusService

__all__ = ["StatusReport", "StatusService"]
