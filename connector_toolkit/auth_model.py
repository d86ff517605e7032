"""
Authentication Model - Derives connector auth settings from a Swagger scheme

Given the first security definition of an API definition, this module picks
the connection-parameter block (and, for the client-credentials flow, the
header policies) the custom connector needs.

Pure functions only: nothing here touches the filesystem or the CLIs.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .config_schema import OAuthSettings

logger = logging.getLogger(__name__)

AAD_LOGIN_HOST = "login.microsoftonline.com"
AAD_LOGIN_URI = "https://login.microsoftonline.com"
REDIRECT_URL = "https://global.consent.azure-apim.net/redirect"
SCRIPT_FILE_NAME = "script.csx"


class AuthKind(Enum):
    """The auth variants a connector can be generated for."""
    API_KEY = "apiKey"
    BASIC = "basic"
    OAUTH_AAD = "oauth2-aad"
    OAUTH_GENERIC = "oauth2-generic"
    CLIENT_CREDENTIALS = "oauth2-client-credentials"
    UNKNOWN = "unknown"


@dataclass
class AuthModel:
    """Auth fields to merge into apiProperties.json / settings.json."""
    kind: AuthKind
    connection_parameters: Dict[str, Any] = field(default_factory=dict)
    policy_template_instances: List[Dict[str, Any]] = field(default_factory=list)
    requires_script: bool = False


def _constraints(clear_text: Optional[bool] = None, required: str = "true",
                 tab_index: Optional[int] = 2) -> Dict[str, Any]:
    constraints: Dict[str, Any] = {}
    if tab_index is not None:
        constraints["tabIndex"] = tab_index
    if clear_text is not None:
        constraints["clearText"] = clear_text
    constraints["required"] = required
    return constraints


def _secure_string(display_name: str, description: str, tooltip: str,
                   clear_text: bool) -> Dict[str, Any]:
    return {
        "type": "securestring",
        "uiDefinition": {
            "displayName": display_name,
            "description": description,
            "tooltip": tooltip,
            "constraints": _constraints(clear_text=clear_text),
        },
    }


def _string(display_name: str, description: str) -> Dict[str, Any]:
    return {
        "type": "string",
        "uiDefinition": {
            "displayName": display_name,
            "description": description,
            "tooltip": description,
            "constraints": _constraints(),
        },
    }


def normalize_scopes(scopes: Any) -> List[str]:
    """Swagger scopes are a {scope: description} mapping; lists are accepted too."""
    if not scopes:
        return []
    if isinstance(scopes, dict):
        return [str(scope) for scope in scopes.keys()]
    if isinstance(scopes, str):
        return scopes.split()
    return [str(scope) for scope in scopes]


def is_aad_url(*urls: Optional[str]) -> bool:
    return any(url and AAD_LOGIN_HOST in url.lower() for url in urls)


def api_key_parameters() -> Dict[str, Any]:
    return {
        "api_key": _secure_string(
            display_name="API Key",
            description="The API Key for this api",
            tooltip="Provide your API Key",
            clear_text=False,
        ),
    }


def basic_parameters() -> Dict[str, Any]:
    return {
        "username": _secure_string(
            display_name="username",
            description="The username for this api",
            tooltip="Provide the username",
            clear_text=True,
        ),
        "password": _secure_string(
            display_name="password",
            description="The password for this api",
            tooltip="Provide the password",
            clear_text=False,
        ),
    }


def aad_parameters(oauth: OAuthSettings, scopes: List[str]) -> Dict[str, Any]:
    return {
        "token": {
            "type": "oauthSetting",
            "oAuthSettings": {
                "identityProvider": "aad",
                "clientId": oauth.client_id,
                "scopes": scopes,
                "redirectMode": "Global",
                "redirectUrl": REDIRECT_URL,
                "properties": {
                    "IsFirstParty": "False",
                    "AzureActiveDirectoryResourceId": oauth.resource_uri,
                    "IsOnbehalfofLoginSupported": False,
                },
                "customParameters": {
                    "loginUri": {"value": AAD_LOGIN_URI},
                    "tenantId": {"value": oauth.tenant_id},
                    "resourceUri": {"value": oauth.resource_uri},
                    "enableOnbehalfOfLogin": {"value": "false"},
                },
            },
        },
        "token:TenantId": {
            "type": "string",
            "metadata": {
                "sourceType": "AzureActiveDirectoryTenant",
            },
            "uiDefinition": {
                "constraints": {
                    "required": "false",
                    "hidden": "true",
                },
            },
        },
    }


def generic_oauth_parameters(oauth: OAuthSettings, scopes: List[str],
                             authorization_url: str, token_url: str,
                             refresh_url: Optional[str]) -> Dict[str, Any]:
    return {
        "token": {
            "type": "oauthSetting",
            "oAuthSettings": {
                "identityProvider": "oauth2",
                "clientId": oauth.client_id,
                "scopes": scopes,
                "redirectMode": "Global",
                "redirectUrl": REDIRECT_URL,
                "properties": {
                    "IsFirstParty": "False",
                },
                "customParameters": {
                    "authorizationUrl": {"value": authorization_url},
                    "tokenUrl": {"value": token_url},
                    "refreshUrl": {"value": refresh_url or token_url},
                },
            },
        },
    }


def client_credentials_parameters() -> Dict[str, Any]:
    return {
        "clientId": _string("Client ID", "The client ID of the application registration"),
        "clientSecret": _string("Client Secret", "The client secret of the application registration"),
    }


def set_header_policy(name: str, value: str) -> Dict[str, Any]:
    """A policy instance that sets a fixed request header."""
    return {
        "templateId": "setheader",
        "title": name,
        "parameters": {
            "x-ms-apimTemplateParameter.name": name,
            "x-ms-apimTemplateParameter.value": value,
            "x-ms-apimTemplateParameter.existsAction": "override",
            "x-ms-apimTemplate-policySection": "Request",
        },
    }


def client_credentials_policies(token_url: str, scopes: List[str]) -> List[Dict[str, Any]]:
    """
    Headers read by script.csx to request a client-credentials token.

    Order matters: tokenUrl, clientId, clientSecret, then scope when any
    scopes are declared.
    """
    policies = [
        set_header_policy("tokenUrl", token_url),
        set_header_policy("clientId", "@connectionParameters('clientId')"),
        set_header_policy("clientSecret", "@connectionParameters('clientSecret')"),
    ]
    if scopes:
        policies.append(set_header_policy("scope", " ".join(scopes)))
    return policies


def classify(security_definition: Optional[Dict[str, Any]]) -> AuthKind:
    """Pick the auth variant for a Swagger security definition."""
    if not security_definition:
        return AuthKind.UNKNOWN

    scheme_type = security_definition.get("type")
    if scheme_type == "apiKey":
        return AuthKind.API_KEY
    if scheme_type == "basic":
        return AuthKind.BASIC
    if scheme_type == "oauth2":
        flow = security_definition.get("flow")
        if flow == "accessCode":
            if is_aad_url(security_definition.get("authorizationUrl"),
                          security_definition.get("tokenUrl")):
                return AuthKind.OAUTH_AAD
            return AuthKind.OAUTH_GENERIC
        if flow == "application":
            return AuthKind.CLIENT_CREDENTIALS
    return AuthKind.UNKNOWN


def derive_auth_model(security_definition: Optional[Dict[str, Any]],
                      oauth: Optional[OAuthSettings] = None) -> AuthModel:
    """
    Map a security definition (plus the config file's OAuth client
    settings) to the connector's auth fields.

    Args:
        security_definition: one entry of securityDefinitions, or None
        oauth: client id / tenant id / resource URI from the config file

    Returns:
        AuthModel. For unrecognized schemes the kind is UNKNOWN and both
        the parameter block and the policy list are empty.
    """
    oauth = oauth or OAuthSettings()
    definition = security_definition or {}
    kind = classify(definition)
    scopes = normalize_scopes(definition.get("scopes"))

    if kind is AuthKind.API_KEY:
        return AuthModel(kind, api_key_parameters())

    if kind is AuthKind.BASIC:
        return AuthModel(kind, basic_parameters())

    if kind is AuthKind.OAUTH_AAD:
        return AuthModel(kind, aad_parameters(oauth, scopes))

    if kind is AuthKind.OAUTH_GENERIC:
        return AuthModel(kind, generic_oauth_parameters(
            oauth,
            scopes,
            authorization_url=definition.get("authorizationUrl", ""),
            token_url=definition.get("tokenUrl", ""),
            refresh_url=definition.get("refreshUrl"),
        ))

    if kind is AuthKind.CLIENT_CREDENTIALS:
        return AuthModel(
            kind,
            client_credentials_parameters(),
            policy_template_instances=client_credentials_policies(
                definition.get("tokenUrl", ""), scopes),
            requires_script=True,
        )

    logger.info(
        f"No connection parameters generated for security type "
        f"{definition.get('type')!r} (flow {definition.get('flow')!r})"
    )
    return AuthModel(AuthKind.UNKNOWN)
