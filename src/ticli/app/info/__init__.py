from ticli.app.info.service import InfoPayload, InfoService

__all__ = ["InfoPayload", "InfoService"]
