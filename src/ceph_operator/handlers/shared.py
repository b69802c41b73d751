"""Shared utilities for handlers."""

from __future__ import annotations

from kubernetes import client, config

_config_loaded = False


def load_k8s_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    global _config_loaded
    if _config_loaded:
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    _config_loaded = True


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client."""
    load_k8s_config()
    return client.CustomObjectsApi()


def get_core_v1_client() -> client.CoreV1Api:
    """Get Kubernetes CoreV1Api client."""
    load_k8s_config()
    return client.CoreV1Api()


def get_storage_v1_client() -> client.StorageV1Api:
    """Get Kubernetes StorageV1Api client."""
    load_k8s_config()
    return client.StorageV1Api()


def get_apps_v1_client() -> client.AppsV1Api:
    """Get Kubernetes AppsV1Api client."""
    load_k8s_config()
    return client.AppsV1Api()
