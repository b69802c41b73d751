"""Placement (node affinity and tolerations) lookup by environment key."""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

PLUGIN_NODE_AFFINITY_ENV = "CSI_PLUGIN_NODE_AFFINITY"
PLUGIN_TOLERATIONS_ENV = "CSI_PLUGIN_TOLERATIONS"
PROVISIONER_NODE_AFFINITY_ENV = "CSI_PROVISIONER_NODE_AFFINITY"
PROVISIONER_TOLERATIONS_ENV = "CSI_PROVISIONER_TOLERATIONS"


@dataclass(frozen=True)
class Placement:
    """Opaque placement values for one pod group."""

    node_affinity: dict[str, Any] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class DriverPlacement:
    """Placement of the node plugin daemonset and the controller plugin deployment."""

    node_plugin: Placement = field(default_factory=Placement)
    controller_plugin: Placement = field(default_factory=Placement)


def parse_node_affinity(value: str) -> dict[str, Any]:
    """Parse ``key=v1,v2; key2`` into a required node affinity.

    A key with values becomes an ``In`` expression, a bare key an ``Exists``
    expression.
    """
    expressions = []
    for entry in value.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, raw_values = entry.partition("=")
        key = key.strip()
        if not key:
            raise ValueError(f"invalid node affinity entry {entry!r}")
        if sep:
            values = [v.strip() for v in raw_values.split(",") if v.strip()]
            expressions.append({"key": key, "operator": "In", "values": values})
        else:
            expressions.append({"key": key, "operator": "Exists"})

    if not expressions:
        return {}
    return {
        "requiredDuringSchedulingIgnoredDuringExecution": {
            "nodeSelectorTerms": [{"matchExpressions": expressions}],
        }
    }


def parse_tolerations(value: str) -> list[dict[str, Any]]:
    """Parse a YAML list of tolerations."""
    parsed = yaml.safe_load(value)
    if parsed is None:
        return []
    if not isinstance(parsed, list) or not all(isinstance(t, dict) for t in parsed):
        raise ValueError("tolerations must be a list of mappings")
    return parsed


def get_node_affinity(env_key: str, default: dict[str, Any], env: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Look up a node affinity by environment key, falling back to ``default``."""
    env = os.environ if env is None else env
    value = env.get(env_key, "")
    if not value:
        return copy.deepcopy(default)
    try:
        return parse_node_affinity(value)
    except ValueError as e:
        logger.warning(f"failed to parse node affinity from {env_key}, using default: {e}")
        return copy.deepcopy(default)


def get_tolerations(env_key: str, default: list[dict[str, Any]], env: Mapping[str, str] | None = None) -> list[dict[str, Any]]:
    """Look up tolerations by environment key, falling back to ``default``."""
    env = os.environ if env is None else env
    value = env.get(env_key, "")
    if not value:
        return copy.deepcopy(default)
    try:
        return parse_tolerations(value)
    except (ValueError, yaml.YAMLError) as e:
        logger.warning(f"failed to parse tolerations from {env_key}, using default: {e}")
        return copy.deepcopy(default)


def driver_placement_from_env(env: Mapping[str, str] | None = None) -> DriverPlacement:
    """Resolve the node plugin and controller plugin placement."""
    return DriverPlacement(
        node_plugin=Placement(
            node_affinity=get_node_affinity(PLUGIN_NODE_AFFINITY_ENV, {}, env),
            tolerations=get_tolerations(PLUGIN_TOLERATIONS_ENV, [], env),
        ),
        controller_plugin=Placement(
            node_affinity=get_node_affinity(PROVISIONER_NODE_AFFINITY_ENV, {}, env),
            tolerations=get_tolerations(PROVISIONER_TOLERATIONS_ENV, [], env),
        ),
    )
