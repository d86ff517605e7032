"""
API Definition Loader

Reads the Swagger 2.0 document a connector is built from and exposes the
parts the asset flow needs (title, security definitions).

Design decisions:
1. JSON parser first, yaml.safe_load for anything else
2. Local paths and http(s) URLs are both accepted
3. Only the first security definition is consulted downstream
"""

import json
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import httpx
import yaml

from .commands import ErrorType, ToolkitError


def is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def fetch_bytes(source: str, timeout: float = 30.0) -> bytes:
    """Read a local file or download a URL."""
    if is_url(source):
        try:
            response = httpx.get(source, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ToolkitError(
                f"Download of {source} failed with status {e.response.status_code}",
                ErrorType.NETWORK_ERROR,
            )
        except httpx.RequestError as e:
            raise ToolkitError(f"Download of {source} failed: {e}", ErrorType.NETWORK_ERROR)
        return response.content

    path = Path(source)
    if not path.is_file():
        raise ToolkitError(f"File not found: {source}", ErrorType.FILE_NOT_FOUND)
    return path.read_bytes()


class ApiDefinition:
    """A parsed Swagger 2.0 API definition."""

    def __init__(self, document: Dict[str, Any], source: Optional[str] = None,
                 raw: Optional[bytes] = None):
        self.document = document
        self.source = source
        self.raw = raw
        self.info = document.get('info', {})

    @classmethod
    def load(cls, source: str, timeout: float = 30.0) -> "ApiDefinition":
        """Load and parse an API definition from a path or URL."""
        raw = fetch_bytes(source, timeout=timeout)
        try:
            document = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            # PyYAML rejects tab-indented JSON, so YAML is only the fallback
            try:
                document = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise ToolkitError(f"Invalid API definition {source}: {e}", ErrorType.PARSE_ERROR)

        if not isinstance(document, dict):
            raise ToolkitError(
                f"API definition {source} is not a JSON/YAML object",
                ErrorType.PARSE_ERROR,
            )
        return cls(document, source=source, raw=raw)

    @property
    def title(self) -> str:
        return self.info.get('title', '')

    def security_definitions(self) -> Dict[str, Dict]:
        return self.document.get('securityDefinitions') or {}

    def first_security_definition(self) -> Tuple[Optional[str], Dict]:
        """
        Return (name, definition) of the first security scheme.

        Definitions with more than one scheme are not disambiguated; the
        first entry in document order wins.
        """
        for name, scheme in self.security_definitions().items():
            return name, scheme if isinstance(scheme, dict) else {}
        return None, {}

    def write_json(self, destination: str) -> None:
        """
        Write the definition as JSON.

        A local .json source is copied byte-for-byte; YAML or downloaded
        sources are re-serialized.
        """
        if self.source and not is_url(self.source) and self.source.lower().endswith('.json'):
            shutil.copyfile(self.source, destination)
            return

        with open(destination, 'w') as f:
            json.dump(self.document, f, indent=2, default=str)
