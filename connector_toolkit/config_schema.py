"""
Config Schema - Inputs for the connector-asset and deployment flows

Design decisions:
1. JSON-serializable dataclasses (no code in configs)
2. Relative paths resolve against the config file, not the cwd
3. Tool locations come from the environment so CI images can differ
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional
import json
import os


def _resolve(path: str, base_dir: Optional[str]) -> str:
    """Resolve a config-relative path. URLs are returned untouched."""
    if not path or "://" in path or os.path.isabs(path) or not base_dir:
        return path
    return str(Path(base_dir) / path)


@dataclass
class OAuthSettings:
    """OAuth client registration used for the connector's token block."""
    client_id: str = ""
    tenant_id: str = ""
    resource_uri: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "OAuthSettings":
        data = data or {}
        return cls(
            client_id=data.get("clientId", ""),
            tenant_id=data.get("tenantId", ""),
            resource_uri=data.get("resourceUri", ""),
        )


@dataclass
class ConnectorConfig:
    """
    Configuration for one custom connector.

    File format:
        {
            "apiDefinition": "swagger.json",
            "icon": "icon.png",
            "oauth2": {"clientId": "...", "tenantId": "...", "resourceUri": "..."}
        }
    """
    api_definition: str  # local path or http(s) URL
    icon: str  # local path or http(s) URL
    oauth2: OAuthSettings = field(default_factory=OAuthSettings)

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[str] = None) -> "ConnectorConfig":
        """Deserialize from JSON-compatible dict."""
        if not isinstance(data, dict):
            raise ValueError("Connector config must be a JSON object")

        missing = [key for key in ("apiDefinition", "icon") if not data.get(key)]
        if missing:
            raise ValueError(f"Connector config is missing: {', '.join(missing)}")

        return cls(
            api_definition=_resolve(data["apiDefinition"], base_dir),
            icon=_resolve(data["icon"], base_dir),
            oauth2=OAuthSettings.from_dict(data.get("oauth2")),
        )

    @classmethod
    def from_json_file(cls, path: str) -> "ConnectorConfig":
        """Load config from JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data, base_dir=os.path.dirname(os.path.abspath(path)))


@dataclass
class ToolSettings:
    """Executables for the external CLIs."""
    az: str = "az"
    pac: str = "pac"
    datagen: str = "datagen"
    http_timeout_seconds: float = 30.0

    ENV_VARS = {"az": "AZ_CLI", "pac": "PAC_CLI", "datagen": "DATAGEN_CLI"}

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ToolSettings":
        """Build settings, letting AZ_CLI / PAC_CLI / DATAGEN_CLI override defaults."""
        environ = os.environ if environ is None else environ
        settings = cls()
        for tool, env_var in cls.ENV_VARS.items():
            if environ.get(env_var):
                setattr(settings, tool, environ[env_var])
        if environ.get("TOOLKIT_HTTP_TIMEOUT"):
            try:
                settings.http_timeout_seconds = float(environ["TOOLKIT_HTTP_TIMEOUT"])
            except ValueError:
                raise ValueError(
                    f"TOOLKIT_HTTP_TIMEOUT must be a number of seconds, "
                    f"got {environ['TOOLKIT_HTTP_TIMEOUT']!r}"
                )
        return settings

    def executable(self, tool: str) -> str:
        if tool not in self.ENV_VARS:
            raise ValueError(f"Unknown tool: {tool}")
        return getattr(self, tool)


@dataclass
class DatasetSpec:
    """One sample dataset produced by the data generator."""
    domain: str
    output_file: str

    @property
    def parameter_name(self) -> str:
        # "sales-orders" -> "salesOrdersData"
        head, *rest = self.domain.replace("_", "-").split("-")
        return head + "".join(part.capitalize() for part in rest) + "Data"


def _default_datasets() -> List[DatasetSpec]:
    return [
        DatasetSpec(domain="sales", output_file="data/sales.json"),
        DatasetSpec(domain="inventory", output_file="data/inventory.json"),
        DatasetSpec(domain="telemetry", output_file="data/telemetry.json"),
    ]


def _isoformat(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class DeploymentSettings:
    """
    Templates, parameters and sample data for the deployment flow.

    All paths are relative to base_dir (the settings file's directory, or
    the working directory when no settings file is given).
    """
    host_template: str = "templates/functionapp.json"
    functions_template: str = "templates/functions.json"
    parameters_file: str = "templates/parameters.json"
    datasets: List[DatasetSpec] = field(default_factory=_default_datasets)
    start: Optional[str] = None  # ISO 8601, default: end - 7 days
    end: Optional[str] = None  # ISO 8601, default: now (UTC)
    interval: str = "PT1H"
    base_dir: str = "."

    def path(self, relative: str) -> str:
        return _resolve(relative, self.base_dir)

    def time_window(self, now: Optional[datetime] = None):
        """Return (start, end) as ISO strings, filling in defaults."""
        now = now or datetime.now(timezone.utc)
        end = self.end or _isoformat(now)
        start = self.start or _isoformat(now - timedelta(days=7))
        return start, end

    @classmethod
    def from_dict(cls, data: dict, base_dir: str = ".") -> "DeploymentSettings":
        defaults = cls()
        datasets = defaults.datasets
        if data.get("datasets"):
            datasets = [
                DatasetSpec(domain=d["domain"], output_file=d["outputFile"])
                for d in data["datasets"]
            ]
        return cls(
            host_template=data.get("hostTemplate", defaults.host_template),
            functions_template=data.get("functionsTemplate", defaults.functions_template),
            parameters_file=data.get("parametersFile", defaults.parameters_file),
            datasets=datasets,
            start=data.get("start"),
            end=data.get("end"),
            interval=data.get("interval", defaults.interval),
            base_dir=base_dir,
        )

    @classmethod
    def from_json_file(cls, path: str) -> "DeploymentSettings":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f), base_dir=os.path.dirname(os.path.abspath(path)))
