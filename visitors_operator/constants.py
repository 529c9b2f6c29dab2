"""
Shared module to hold constant values for the library
"""

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."

# Default namespace if none given
DEFAULT_NAMESPACE = "default"

# Keys of the label set applied to every managed resource. The same set is used
# as the service selector and the workload selector.
LABEL_APP = "app"
LABEL_OWNER = "owner"
LABEL_TIER = "tier"

# Fields written onto the owning resource's status
STATUS_BACKEND_IMAGE = "backendImage"
STATUS_FRONTEND_IMAGE = "frontendImage"

# Kinds and api versions of the managed resources
DEPLOYMENT_KIND = "Deployment"
DEPLOYMENT_API_VERSION = "apps/v1"
SERVICE_KIND = "Service"
SECRET_KIND = "Secret"
CORE_API_VERSION = "v1"
