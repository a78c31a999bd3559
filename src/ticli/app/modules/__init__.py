from ticli.app.modules.service import DetectedModule, ModuleService, detect_modules, read_manifest

__all__ = ["DetectedModule", "ModuleService", "detect_modules", "read_manifest"]
