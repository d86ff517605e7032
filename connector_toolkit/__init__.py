"""Custom connector asset generation and function app deployment"""

from .config_schema import ConnectorConfig, OAuthSettings, ToolSettings, DeploymentSettings, DatasetSpec
from .commands import CommandRunner, CommandResult, ErrorType, ToolkitError
from .auth_model import AuthKind, AuthModel, derive_auth_model
from .api_definition import ApiDefinition
from .assets import AssetBuilder, AssetResult, build_assets, register_connector
from .deploy import Deployment, DeploymentResult

__all__ = [
    "ConnectorConfig",
    "OAuthSettings",
    "ToolSettings",
    "DeploymentSettings",
    "DatasetSpec",
    "CommandRunner",
    "CommandResult",
    "ErrorType",
    "ToolkitError",
    "AuthKind",
    "AuthModel",
    "derive_auth_model",
    "ApiDefinition",
    "AssetBuilder",
    "AssetResult",
    "build_assets",
    "register_connector",
    "Deployment",
    "DeploymentResult",
]
