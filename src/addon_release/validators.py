"""Syntactic checks for the addon fields collected by the CLI."""

import re
from typing import Callable, Literal

from pydantic import AnyUrl, TypeAdapter, ValidationError

FieldKind = Literal["region", "namespace", "url", "addon_name"]

# Starts with a letter, ends with a letter or digit, 3-25 characters.
_REGION_RE = re.compile(r"^[a-z][a-z0-9-]{1,23}[a-z0-9]$")
_NAMESPACE_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_NAMESPACE_MAX_LEN = 63
# Ends up in staging paths and in the feature branch ref.
_ADDON_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_region(region: str) -> bool:
    return bool(_REGION_RE.fullmatch(region))


def is_valid_addon_name(name: str) -> bool:
    """Letters, digits, ``.``, ``_`` and ``-``; no ``..``, no trailing ``.`` or ``.lock``."""
    if not _ADDON_NAME_RE.fullmatch(name):
        return False
    return ".." not in name and not name.endswith((".", ".lock"))


def is_valid_namespace(namespace: str) -> bool:
    """Kubernetes namespace rules: DNS label, at most 63 characters."""
    if len(namespace) > _NAMESPACE_MAX_LEN:
        return False
    return bool(_NAMESPACE_RE.fullmatch(namespace))


def is_valid_url(value: str) -> bool:
    """Accept absolute URLs of any scheme (https://, oci://, ...)."""
    if not value or value != value.strip():
        return False
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


_CHECKS: dict[str, Callable[[str], bool]] = {
    "region": is_valid_region,
    "namespace": is_valid_namespace,
    "url": is_valid_url,
    "addon_name": is_valid_addon_name,
}


def is_valid_field(kind: FieldKind, value: str) -> bool:
    """Check ``value`` against the rules for ``kind``.

    Raises:
        ValueError: If ``kind`` is not a known field kind.
    """
    try:
        check = _CHECKS[kind]
    except KeyError:
        raise ValueError(f"Unknown field kind: {kind}") from None
    return check(value)
