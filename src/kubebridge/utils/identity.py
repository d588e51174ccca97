"""
Identity token encoding for Kubernetes objects.

An object is identified by its name and, for namespaced kinds, its namespace.
Callers persist the pair as a single opaque token of the form ``name`` or
``name/namespace``:

    >>> encode_identity("cm1", "default")
    'cm1/default'
    >>> decode_identity("cm1/default")
    ResourceIdentity(name='cm1', namespace='default')

Decoding splits on the first separator only. Any further separators are
dropped together with the text that follows them, so ``a/b/c`` decodes to
``("a", "b")``. Kubernetes forbids ``/`` in both names and namespaces, so such
tokens never come out of :func:`encode_identity`. Character sets are not
checked here; the API server rejects invalid names at request time. Use
:func:`validate_identity_part` to reject them earlier.
"""

import re
from typing import NamedTuple

from kubebridge.constants import IDENTITY_SEPARATOR
from kubebridge.errors import IdentityError

# RFC 1123 subdomain, the most permissive form Kubernetes accepts for names
_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$")
_MAX_NAME_LENGTH = 253


class ResourceIdentity(NamedTuple):
    """Name and namespace of an object; namespace is empty for cluster scope."""

    name: str
    namespace: str = ""

    @property
    def token(self) -> str:
        return encode_identity(self.name, self.namespace)


def encode_identity(name: str, namespace: str = "") -> str:
    """
    Encode a name/namespace pair into an identity token.

    Args:
        name: Object name
        namespace: Object namespace, empty for cluster-scoped objects

    Returns:
        ``name`` when namespace is empty, otherwise ``name/namespace``
    """
    if not namespace:
        return name
    return f"{name}{IDENTITY_SEPARATOR}{namespace}"


def decode_identity(token: str) -> ResourceIdentity:
    """
    Decode an identity token produced by :func:`encode_identity`.

    Args:
        token: Identity token

    Returns:
        ResourceIdentity with the name and (possibly empty) namespace

    Raises:
        IdentityError: If the token is empty
    """
    if not token:
        raise IdentityError("Identity token is empty", token=token)

    parts = token.split(IDENTITY_SEPARATOR)
    if len(parts) == 1:
        return ResourceIdentity(name=parts[0])
    return ResourceIdentity(name=parts[0], namespace=parts[1])


def validate_identity_part(value: str, label: str = "name") -> None:
    """
    Validate a name or namespace against Kubernetes naming rules.

    Args:
        value: Name or namespace to validate
        label: What the value is, used in error messages

    Raises:
        IdentityError: If the value is empty, too long, or malformed
    """
    if not value:
        raise IdentityError(f"Identity {label} cannot be empty")

    if len(value) > _MAX_NAME_LENGTH:
        raise IdentityError(
            f"Identity {label} '{value[:20]}...' is too long "
            f"({len(value)} > {_MAX_NAME_LENGTH})"
        )

    if IDENTITY_SEPARATOR in value:
        raise IdentityError(
            f"Identity {label} '{value}' must not contain '{IDENTITY_SEPARATOR}'"
        )

    if not _NAME_PATTERN.match(value):
        raise IdentityError(
            f"Identity {label} '{value}' must consist of lower case alphanumeric "
            "characters, '-' or '.', and must start and end with an alphanumeric "
            "character"
        )
