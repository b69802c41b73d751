"""Clients for the Kubernetes API and the Ceph cluster."""
