"""Titanium project descriptors: ``tiapp.xml`` and ``ti.config.yml``."""

from __future__ import annotations

import copy
import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml
from jsonschema.exceptions import best_match

from ticli.domain.errors import ProjectConfigError

TIAPP_FILE = "tiapp.xml"
PROJECT_CONFIG_FILE = "ti.config.yml"
PACKAGE_FILE = "package.json"

_CAMEL_RE = re.compile(r"([a-zA-Z])(?=[A-Z])")

_PROJECT_VALIDATOR: jsonschema.Draft202012Validator | None = None


def project_defaults() -> dict[str, Any]:
    return {
        "deploymentTargets": ["android", "ipad", "iphone"],
        "modules": [],
        "plugins": [],
        "properties": {},
    }


def find_project_dir(start: Path) -> Path | None:
    """Walk up from ``start`` until a directory holding a project descriptor is found."""

    current = start.expanduser().resolve()
    if not current.exists():
        return None
    for candidate in (current, *current.parents):
        if (candidate / TIAPP_FILE).exists() or (candidate / PROJECT_CONFIG_FILE).exists():
            return candidate
    return None


@dataclass
class TiApp:
    path: Path
    id: str | None = None
    name: str | None = None
    version: str | None = None
    guid: str | None = None
    publisher: str | None = None
    sdk_version: str | None = None
    deployment_targets: dict[str, bool] = field(default_factory=dict)
    modules: list[dict[str, str]] = field(default_factory=list)
    plugins: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "guid": self.guid,
            "publisher": self.publisher,
            "sdkVersion": self.sdk_version,
            "deploymentTargets": dict(self.deployment_targets),
            "modules": [dict(entry) for entry in self.modules],
            "plugins": [dict(entry) for entry in self.plugins],
        }


def _text(root: ET.Element, tag: str) -> str | None:
    node = root.find(tag)
    if node is None or node.text is None:
        return None
    return node.text.strip() or None


def read_tiapp(path: Path) -> TiApp:
    if not path.exists():
        raise ProjectConfigError(f"File not found: {path}")
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise ProjectConfigError(f"Unable to parse {path}: {exc}") from exc

    tiapp = TiApp(
        path=path,
        id=_text(root, "id"),
        name=_text(root, "name"),
        version=_text(root, "version"),
        guid=_text(root, "guid"),
        publisher=_text(root, "publisher"),
        sdk_version=_text(root, "sdk-version"),
    )
    targets = root.find("deployment-targets")
    if targets is not None:
        for target in targets.findall("target"):
            device = target.get("device")
            if device:
                tiapp.deployment_targets[device] = (target.text or "").strip().lower() == "true"
    for section, bucket in (("modules", tiapp.modules), ("plugins", tiapp.plugins)):
        container = root.find(section)
        if container is None:
            continue
        for node in container:
            entry = {key: value for key, value in node.attrib.items()}
            entry["id"] = (node.text or "").strip()
            if entry["id"]:
                bucket.append(entry)
    return tiapp


def _project_validator() -> jsonschema.Draft202012Validator:
    global _PROJECT_VALIDATOR
    if _PROJECT_VALIDATOR is None:
        schema_resource = resources.files("ticli.resources") / "project.schema.json"
        _PROJECT_VALIDATOR = jsonschema.Draft202012Validator(json.loads(schema_resource.read_text(encoding="utf-8")))
    return _PROJECT_VALIDATOR


def validate_project_config(config: Mapping[str, Any], source: Path | None = None) -> None:
    error = best_match(_project_validator().iter_errors(dict(config)))
    if error is None:
        return
    location = ".".join(str(part) for part in error.absolute_path) or "<root>"
    where = f" {source}" if source else ""
    raise ProjectConfigError(f"Invalid project config{where}: {location}: {error.message}")


def camel_to_kebab(value: str) -> str:
    return _CAMEL_RE.sub(r"\1-", value).lower()


def normalize_property_names(value: Any) -> Any:
    """Copy ``value`` adding a kebab-case alias next to every camelCase key."""

    if isinstance(value, list):
        return [normalize_property_names(item) for item in value]
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for name, item in value.items():
            result[name] = normalize_property_names(item)
        for name in list(result):
            alias = camel_to_kebab(name)
            if alias != name and alias not in result:
                result[alias] = result[name]
        return result
    return value


def normalize_dependency(dep: Any, kind: str = "module") -> dict[str, Any]:
    if isinstance(dep, (list, tuple)):
        options = dep[1] if len(dep) > 1 and isinstance(dep[1], Mapping) else {}
        return {"id": dep[0], **options}
    if isinstance(dep, str):
        return {"id": dep}
    if isinstance(dep, Mapping):
        return dict(dep)
    raise ProjectConfigError(
        f'Invalid {kind} configuration. Expected a type of "array", "string" or "object". '
        f"Received {type(dep).__name__}"
    )


def normalize_project_config(config: Mapping[str, Any]) -> dict[str, Any]:
    result = normalize_property_names(config)
    result["modules"] = [normalize_dependency(entry) for entry in result.get("modules", []) if entry]
    result["plugins"] = [normalize_dependency(entry, "plugin") for entry in result.get("plugins", []) if entry]
    return result


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load, validate and normalise ``<project_dir>/ti.config.yml``."""

    config_path = project_dir / PROJECT_CONFIG_FILE
    if not config_path.exists():
        raise ProjectConfigError(f"Could not find Titanium config at {config_path}")
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ProjectConfigError(f"Unable to parse {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ProjectConfigError(f"{config_path} must contain a mapping")

    package_path = project_dir / PACKAGE_FILE
    if package_path.exists():
        try:
            package = json.loads(package_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ProjectConfigError(f"Unable to parse {package_path}: {exc}") from exc
        for key in ("name", "description", "version"):
            if not raw.get(key) and package.get(key):
                raw[key] = package[key]

    validate_project_config(raw, config_path)
    merged = copy.deepcopy(project_defaults())
    merged.update(raw)
    return normalize_project_config(merged)
