"""Utilities for managing daemon keyring secrets."""

from __future__ import annotations

import base64
import enum
from typing import Any

from kubernetes import client

from ..constants import FIELD_MANAGER, KEYRING_SECRET_KEY
from .errors import CreateFailed, FetchFailed, UpdateFailed

KIND_SECRET = "Secret"


class SecretWrite(str, enum.Enum):
    """What happened to a keyring secret."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def _encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


def create_keyring_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    keyring: str,
    labels: dict[str, str] | None = None,
    owner_references: list[dict[str, Any]] | None = None,
    timeout: float | None = None,
) -> None:
    """Create a keyring secret."""
    secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=secret_name,
            namespace=namespace,
            labels=labels or {},
            owner_references=owner_references or [],
        ),
        type="kubernetes.io/rook",
        data={KEYRING_SECRET_KEY: _encode(keyring)},
    )

    api.create_namespaced_secret(
        namespace=namespace,
        body=secret,
        field_manager=FIELD_MANAGER,
        _request_timeout=timeout,
    )


def patch_keyring(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    keyring: str,
    timeout: float | None = None,
) -> None:
    """Replace only the keyring field of an existing secret."""
    api.patch_namespaced_secret(
        name=secret_name,
        namespace=namespace,
        body={"data": {KEYRING_SECRET_KEY: _encode(keyring)}},
        field_manager=FIELD_MANAGER,
        _request_timeout=timeout,
    )


def keyring_secret_exists(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    timeout: float | None = None,
) -> bool:
    """Whether the keyring secret exists.

    Raises:
        FetchFailed: Reading the secret failed with anything other than not-found
    """
    try:
        api.read_namespaced_secret(name=secret_name, namespace=namespace, _request_timeout=timeout)
    except client.exceptions.ApiException as e:
        if e.status != 404:
            raise FetchFailed(KIND_SECRET, namespace, secret_name, e) from e
        return False
    return True


def ensure_keyring_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    keyring: str,
    rotated: bool,
    labels: dict[str, str] | None = None,
    owner_references: list[dict[str, Any]] | None = None,
    timeout: float | None = None,
) -> SecretWrite:
    """Create the keyring secret when missing; on rotation patch its keyring.

    An existing secret is left alone unless the key was rotated.

    Raises:
        FetchFailed: Reading the secret failed with anything other than not-found
        CreateFailed: The missing secret could not be created
        UpdateFailed: The rotated keyring could not be written
    """
    if not keyring_secret_exists(api, namespace, secret_name, timeout):
        try:
            create_keyring_secret(api, namespace, secret_name, keyring, labels, owner_references, timeout)
        except client.exceptions.ApiException as create_error:
            raise CreateFailed(KIND_SECRET, namespace, secret_name, create_error) from create_error
        return SecretWrite.CREATED

    if not rotated:
        return SecretWrite.UNCHANGED

    try:
        patch_keyring(api, namespace, secret_name, keyring, timeout)
    except client.exceptions.ApiException as e:
        raise UpdateFailed(KIND_SECRET, namespace, secret_name, e) from e
    return SecretWrite.UPDATED
