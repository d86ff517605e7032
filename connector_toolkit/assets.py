"""
Asset Builder - Assembles the files of a custom connector

Workflow:
1. Scaffold apiProperties.json / settings.json with `pac connector init`
2. Copy the API definition and icon into the output directory
3. Merge the derived auth fields into the scaffolded documents
4. Attach script.csx for the client-credentials flow

Registration (`pac connector create`) is a separate step run against a
finished asset directory.
"""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .api_definition import ApiDefinition, fetch_bytes
from .auth_model import SCRIPT_FILE_NAME, AuthKind, AuthModel, derive_auth_model
from .commands import CommandRunner, ErrorType, ToolkitError, run_checked
from .config_schema import ConnectorConfig

logger = logging.getLogger(__name__)

API_DEFINITION_FILE = "apiDefinition.json"
API_PROPERTIES_FILE = "apiProperties.json"
SETTINGS_FILE = "settings.json"
ICON_FILE = "icon.png"
SCRIPT_TEMPLATE = Path(__file__).parent / "templates" / SCRIPT_FILE_NAME


@dataclass
class AssetResult:
    """Outcome of building or registering a connector."""
    success: bool
    output_dir: Optional[str] = None
    auth_kind: Optional[AuthKind] = None
    files: List[str] = field(default_factory=list)
    connector_id: Optional[str] = None
    error: Optional[str] = None
    error_type: ErrorType = ErrorType.SUCCESS


def load_json(path: str, default: Optional[Dict] = None) -> Dict[str, Any]:
    """Read a JSON document, or return a copy of default if the file is absent."""
    if not os.path.exists(path):
        return dict(default or {})
    try:
        with open(path, "r") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise ToolkitError(f"Invalid JSON in {path}: {e}", ErrorType.PARSE_ERROR)

    if not isinstance(document, dict):
        raise ToolkitError(f"{path} must contain a JSON object", ErrorType.PARSE_ERROR)
    return document


def write_json(path: str, document: Dict[str, Any]) -> None:
    with open(path, "w") as f:
        json.dump(document, f, indent=2)
        f.write("\n")


def merge_auth_model(api_properties: Dict[str, Any], settings: Dict[str, Any],
                     model: AuthModel) -> None:
    """Apply an AuthModel to the apiProperties and settings documents in place."""
    properties = api_properties.get("properties")
    if properties is None:
        properties = api_properties["properties"] = {}
    if not isinstance(properties, dict):
        raise ToolkitError(f"{API_PROPERTIES_FILE}: 'properties' must be a JSON object",
                           ErrorType.PARSE_ERROR)

    if model.kind is not AuthKind.UNKNOWN:
        properties["connectionParameters"] = model.connection_parameters

    if model.policy_template_instances:
        policies = properties.get("policyTemplateInstances") or []
        if not isinstance(policies, list):
            raise ToolkitError(
                f"{API_PROPERTIES_FILE}: 'policyTemplateInstances' must be a JSON array",
                ErrorType.PARSE_ERROR,
            )
        properties["policyTemplateInstances"] = policies + model.policy_template_instances

    if model.requires_script:
        settings["script"] = SCRIPT_FILE_NAME


class AssetBuilder:
    """Builds the asset directory for one connector config."""

    def __init__(self, config: ConnectorConfig, output_dir: str,
                 runner: Optional[CommandRunner] = None,
                 http_timeout: float = 30.0):
        self.config = config
        self.output_dir = output_dir
        self.runner = runner or CommandRunner()
        self.http_timeout = http_timeout

    def _path(self, name: str) -> str:
        return os.path.join(self.output_dir, name)

    def scaffold(self) -> None:
        """Create the output directory and let pac write the skeleton files."""
        os.makedirs(self.output_dir, exist_ok=True)
        run_checked(self.runner, "pac", [
            "connector", "init",
            "--outputDirectory", self.output_dir,
            "--generate-settings-file",
        ])

    def copy_api_definition(self) -> ApiDefinition:
        definition = ApiDefinition.load(self.config.api_definition, timeout=self.http_timeout)
        definition.write_json(self._path(API_DEFINITION_FILE))
        return definition

    def copy_icon(self) -> None:
        try:
            data = fetch_bytes(self.config.icon, timeout=self.http_timeout)
        except ToolkitError as e:
            if e.error_type is ErrorType.FILE_NOT_FOUND:
                raise ToolkitError(f"Icon not found: {self.config.icon}", ErrorType.FILE_NOT_FOUND)
            raise
        with open(self._path(ICON_FILE), "wb") as f:
            f.write(data)

    def attach_script(self) -> None:
        shutil.copyfile(SCRIPT_TEMPLATE, self._path(SCRIPT_FILE_NAME))

    def build(self) -> AssetResult:
        """Run every step; any failure ends the run with an error result."""
        try:
            self.scaffold()
            definition = self.copy_api_definition()
            self.copy_icon()

            scheme_name, scheme = definition.first_security_definition()
            model = derive_auth_model(scheme, self.config.oauth2)
            logger.debug(f"Security definition {scheme_name!r} -> {model.kind.value}")
            if model.kind is AuthKind.UNKNOWN:
                print(f"No known authentication type in {self.config.api_definition}; "
                      f"connection parameters left unchanged")

            api_properties = load_json(self._path(API_PROPERTIES_FILE), {"properties": {}})
            settings = load_json(self._path(SETTINGS_FILE))

            merge_auth_model(api_properties, settings, model)
            settings["apiDefinition"] = API_DEFINITION_FILE
            settings["apiProperties"] = API_PROPERTIES_FILE
            settings["icon"] = ICON_FILE

            files = [API_DEFINITION_FILE, ICON_FILE, API_PROPERTIES_FILE, SETTINGS_FILE]
            if model.requires_script:
                self.attach_script()
                files.append(SCRIPT_FILE_NAME)

            write_json(self._path(API_PROPERTIES_FILE), api_properties)
            write_json(self._path(SETTINGS_FILE), settings)

        except ToolkitError as e:
            return AssetResult(success=False, output_dir=self.output_dir,
                               error=str(e), error_type=e.error_type)
        except OSError as e:
            return AssetResult(success=False, output_dir=self.output_dir,
                               error=str(e), error_type=ErrorType.UNKNOWN)

        return AssetResult(
            success=True,
            output_dir=self.output_dir,
            auth_kind=model.kind,
            files=files,
        )


def build_assets(config_path: str, output_dir: str,
                 runner: Optional[CommandRunner] = None,
                 http_timeout: float = 30.0) -> AssetResult:
    """Load a connector config file and build its assets."""
    try:
        config = ConnectorConfig.from_json_file(config_path)
    except FileNotFoundError:
        return AssetResult(success=False, error=f"Config file not found: {config_path}",
                           error_type=ErrorType.FILE_NOT_FOUND)
    except json.JSONDecodeError as e:
        return AssetResult(success=False, error=f"Invalid JSON in config file: {e}",
                           error_type=ErrorType.PARSE_ERROR)
    except ValueError as e:
        return AssetResult(success=False, error=str(e), error_type=ErrorType.CONFIG_ERROR)

    return AssetBuilder(config, output_dir, runner, http_timeout=http_timeout).build()


def register_connector(assets_dir: str, runner: Optional[CommandRunner] = None) -> AssetResult:
    """
    Register an asset directory with the platform.

    Uses `pac connector update` when settings.json already names a
    connectorId, `pac connector create` otherwise.
    """
    runner = runner or CommandRunner()
    settings_path = os.path.join(assets_dir, SETTINGS_FILE)

    if not os.path.isfile(settings_path):
        return AssetResult(success=False, output_dir=assets_dir,
                           error=f"{SETTINGS_FILE} not found in {assets_dir}",
                           error_type=ErrorType.FILE_NOT_FOUND)

    try:
        settings = load_json(settings_path)
        connector_id = settings.get("connectorId") or None
        action = "update" if connector_id else "create"
        args = ["connector", action, "--settings-file", SETTINGS_FILE]
        if connector_id:
            args += ["--connector-id", connector_id]
        result = run_checked(runner, "pac", args, cwd=assets_dir)
    except ToolkitError as e:
        return AssetResult(success=False, output_dir=assets_dir,
                           error=str(e), error_type=e.error_type)

    logger.debug(result.stdout)
    return AssetResult(
        success=True,
        output_dir=assets_dir,
        connector_id=connector_id,
        files=[SETTINGS_FILE],
    )
