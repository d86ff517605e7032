"""
Function App Deployment

Sequential flow against one resource group:
1. Deploy the function-app host template
2. Generate the sample datasets with the external data generator
3. Deploy the functions template, passing each dataset as a parameter
4. List the functions and collect their invocation URLs

Each az call must succeed before the next one starts.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .commands import CommandRunner, ErrorType, ToolkitError, run_checked
from .config_schema import DeploymentSettings

logger = logging.getLogger(__name__)


@dataclass
class DeploymentResult:
    """Outcome of a deployment run."""
    success: bool
    resource_group: Optional[str] = None
    function_app: Optional[str] = None
    datasets: List[str] = field(default_factory=list)
    invoke_urls: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_type: ErrorType = ErrorType.SUCCESS


def _deployment_output(deployment: Any, name: str) -> Optional[str]:
    """Read properties.outputs.<name>.value from `az deployment group create` JSON."""
    if not isinstance(deployment, dict):
        return None
    outputs = (deployment.get("properties") or {}).get("outputs") or {}
    output = outputs.get(name)
    if isinstance(output, dict):
        return output.get("value")
    return None


def _parameter_value(parameters: Dict[str, Any], name: str) -> Optional[str]:
    """Read a value from an ARM parameters file."""
    entry = (parameters.get("parameters") or {}).get(name)
    if isinstance(entry, dict):
        return entry.get("value")
    return None


class Deployment:
    """Runs the deployment flow for one settings object."""

    def __init__(self, settings: Optional[DeploymentSettings] = None,
                 runner: Optional[CommandRunner] = None):
        self.settings = settings or DeploymentSettings()
        self.runner = runner or CommandRunner()

    def _check_files(self) -> None:
        for relative in (self.settings.host_template,
                         self.settings.functions_template,
                         self.settings.parameters_file):
            path = self.settings.path(relative)
            if not os.path.isfile(path):
                raise ToolkitError(f"File not found: {path}", ErrorType.FILE_NOT_FOUND)

    def _load_parameters(self) -> Dict[str, Any]:
        path = self.settings.path(self.settings.parameters_file)
        try:
            with open(path, "r") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ToolkitError(f"Invalid JSON in {path}: {e}", ErrorType.PARSE_ERROR)

    def deploy_host(self, resource_group: str) -> str:
        """Deploy the host template and return the function-app name."""
        print(f"Deploying function app host to {resource_group}...")
        result = run_checked(self.runner, "az", [
            "deployment", "group", "create",
            "--resource-group", resource_group,
            "--template-file", self.settings.path(self.settings.host_template),
            "--parameters", "@" + self.settings.path(self.settings.parameters_file),
            "--output", "json",
        ])

        app_name = _deployment_output(result.parse_json(), "functionAppName")
        if not app_name:
            app_name = _parameter_value(self._load_parameters(), "functionAppName")
        if not app_name:
            raise ToolkitError(
                "Could not determine the function app name from the deployment "
                "outputs or the parameters file",
                ErrorType.CONFIG_ERROR,
            )
        return app_name

    def generate_datasets(self) -> List[str]:
        """Run the data generator once per dataset and return the output files."""
        start, end = self.settings.time_window()
        files = []
        for dataset in self.settings.datasets:
            output_file = self.settings.path(dataset.output_file)
            directory = os.path.dirname(output_file)
            if directory:
                os.makedirs(directory, exist_ok=True)

            print(f"Generating {dataset.domain} data -> {output_file}")
            run_checked(self.runner, "datagen", [
                start, end, self.settings.interval, dataset.domain, output_file,
            ])
            files.append(output_file)
        return files

    def deploy_functions(self, resource_group: str, app_name: str) -> None:
        print(f"Deploying HTTP functions to {app_name}...")
        args = [
            "deployment", "group", "create",
            "--resource-group", resource_group,
            "--template-file", self.settings.path(self.settings.functions_template),
            "--parameters", "@" + self.settings.path(self.settings.parameters_file),
            "--parameters", f"functionAppName={app_name}",
        ]
        for dataset in self.settings.datasets:
            args += ["--parameters",
                     f"{dataset.parameter_name}=@{self.settings.path(dataset.output_file)}"]
        args += ["--output", "json"]
        run_checked(self.runner, "az", args)

    def invoke_urls(self, resource_group: str, app_name: str) -> List[str]:
        result = run_checked(self.runner, "az", [
            "functionapp", "function", "list",
            "--resource-group", resource_group,
            "--name", app_name,
            "--output", "json",
        ])
        functions = result.parse_json() or []
        return [f["invokeUrlTemplate"] for f in functions
                if isinstance(f, dict) and f.get("invokeUrlTemplate")]

    def run(self, resource_group: str) -> DeploymentResult:
        if not resource_group:
            return DeploymentResult(success=False, error="resourceGroup is required",
                                    error_type=ErrorType.CONFIG_ERROR)

        app_name = None
        datasets: List[str] = []
        try:
            self._check_files()
            app_name = self.deploy_host(resource_group)
            datasets = self.generate_datasets()
            self.deploy_functions(resource_group, app_name)
            urls = self.invoke_urls(resource_group, app_name)
        except ToolkitError as e:
            return DeploymentResult(success=False, resource_group=resource_group,
                                    function_app=app_name, datasets=datasets,
                                    error=str(e), error_type=e.error_type)
        except OSError as e:
            return DeploymentResult(success=False, resource_group=resource_group,
                                    function_app=app_name, datasets=datasets,
                                    error=str(e), error_type=ErrorType.UNKNOWN)

        logger.debug(f"Deployed {app_name} with {len(urls)} functions")
        return DeploymentResult(
            success=True,
            resource_group=resource_group,
            function_app=app_name,
            datasets=datasets,
            invoke_urls=urls,
        )
