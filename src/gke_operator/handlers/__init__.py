"""Handler modules for CRD resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import cluster  # noqa: F401
from . import nodepool  # noqa: F401
from . import provider  # noqa: F401
