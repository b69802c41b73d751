"""Constants for the Ceph Operator."""

# API Groups
API_GROUP = "ceph.rook.io"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

CSI_API_GROUP = "csi.ceph.io"
CSI_API_VERSION = "v1"
CSI_API_GROUP_VERSION = f"{CSI_API_GROUP}/{CSI_API_VERSION}"

# Resource Kinds
KIND_CEPH_CLUSTER = "CephCluster"
KIND_CEPH_FILESYSTEM = "CephFilesystem"
KIND_CEPH_FILESYSTEM_SUBVOLUME_GROUP = "CephFilesystemSubVolumeGroup"
KIND_CSI_DRIVER = "Driver"
KIND_CONFIG_MAP = "ConfigMap"
KIND_STORAGE_CSI_DRIVER = "CSIDriver"

# Plurals
PLURAL_CEPH_CLUSTERS = "cephclusters"
PLURAL_CEPH_FILESYSTEMS = "cephfilesystems"
PLURAL_CEPH_FILESYSTEM_SUBVOLUME_GROUPS = "cephfilesystemsubvolumegroups"
PLURAL_CSI_DRIVERS = "drivers"

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"
LABEL_APP = "app"
LABEL_FILESYSTEM = "rook_file_system"

# Annotations
ANNOTATION_CSI_OWNER_REF = f"{CSI_API_GROUP}/ownerref"
ANNOTATION_CEPHX_KEY_GENERATION = f"{API_GROUP}/cephx-key-generation"

# Finalizers
FINALIZER_CEPH_FILESYSTEM = "cephfilesystem.ceph.rook.io"

# Field Manager
FIELD_MANAGER = "ceph-operator"
CONTROLLER_NAME = "ceph-operator"

# CSI driver naming
RBD_DRIVER_SUFFIX = "rbd.csi.ceph.com"
CEPHFS_DRIVER_SUFFIX = "cephfs.csi.ceph.com"
NFS_DRIVER_SUFFIX = "nfs.csi.ceph.com"
IMAGE_SET_CONFIGMAP_NAME = "rook-csi-operator-image-set-configmap"

# Cephx key rotation
CEPHX_ROTATION_POLICY_KEY_GENERATION = "KeyGeneration"
CEPHX_MIN_ROTATION_VERSION = (20, 2, 0)
KEYRING_SECRET_KEY = "keyring"

# Cluster readiness
CLUSTER_PHASE_READY = "Ready"

# Condition Types
COND_READY = "Ready"
COND_CLUSTER_NOT_READY = "ClusterNotReady"
COND_KEY_ROTATION_FAILED = "KeyRotationFailed"
COND_DELETION_BLOCKED = "DeletionBlocked"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_RECONCILE_SUCCEEDED = "ReconcileSucceeded"
EVENT_REASON_DRIVER_CREATED = "DriverCreated"
EVENT_REASON_DRIVER_UPDATED = "DriverUpdated"
EVENT_REASON_OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
EVENT_REASON_KEY_ROTATED = "KeyRotated"
EVENT_REASON_DELETION_BLOCKED = "DeletionBlocked"

# Requeue delays (seconds)
REQUEUE_CLUSTER_NOT_READY_SECONDS = 10
REQUEUE_DEPENDENTS_SECONDS = 10
