"""Handler modules for CRD resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import csi_driver  # noqa: F401
from . import filesystem  # noqa: F401
