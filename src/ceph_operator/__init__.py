"""Kopf operator managing Ceph CSI drivers and filesystem daemon credentials."""

__version__ = "0.1.0"
