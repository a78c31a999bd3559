from ticli.app.auth.service import AuthService, validate_credential

__all__ = ["AuthService", "validate_credential"]
