"""Constants for the GKE Operator."""

# API Group
API_GROUP = "gke.cloud37.dev"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_PROVIDER = "Provider"
KIND_CLUSTER = "GKECluster"
KIND_NODE_POOL = "NodePool"

# Resource Plurals
PLURAL_PROVIDER = "providers"
PLURAL_CLUSTER = "gkeclusters"
PLURAL_NODE_POOL = "nodepools"

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"

# Annotations
ANNOTATION_EXTERNAL_NAME = f"{API_GROUP}/external-name"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "gke-operator"
CONTROLLER_NAME = "gke-operator"

# Condition Types
COND_READY = "Ready"
COND_SYNCED = "Synced"
COND_CREDENTIALS_VALID = "CredentialsValid"

# Condition Reasons
REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"
REASON_CREATING = "Creating"
REASON_DELETING = "Deleting"
REASON_RECONCILE_SUCCESS = "ReconcileSuccess"
REASON_RECONCILE_ERROR = "ReconcileError"

# Binding Phases
BINDING_PHASE_UNBOUND = "Unbound"
BINDING_PHASE_BOUND = "Bound"

# Deletion Policies
DELETION_POLICY_DELETE = "Delete"
DELETION_POLICY_RETAIN = "Retain"

# Requeue delays (seconds)
REQUEUE_ON_WAIT_SECONDS = 30
REQUEUE_ON_SUCCESS_SECONDS = 120

# External object states reported by the container API
STATE_UNSPECIFIED = "STATUS_UNSPECIFIED"
STATE_PROVISIONING = "PROVISIONING"
STATE_RUNNING = "RUNNING"
STATE_RUNNING_WITH_ERROR = "RUNNING_WITH_ERROR"
STATE_RECONCILING = "RECONCILING"
STATE_STOPPING = "STOPPING"
STATE_ERROR = "ERROR"
STATE_DEGRADED = "DEGRADED"

# Container API
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
CONTAINER_API_NAME = "container"
CONTAINER_API_VERSION = "v1beta1"

# Connection secret keys
CONNECTION_ENDPOINT_KEY = "endpoint"
CONNECTION_USERNAME_KEY = "username"
CONNECTION_PASSWORD_KEY = "password"
CONNECTION_CA_KEY = "clusterCA"
CONNECTION_CLIENT_CERT_KEY = "clientCert"
CONNECTION_CLIENT_KEY_KEY = "clientKey"
CONNECTION_KUBECONFIG_KEY = "kubeconfig"

# Error strings
ERR_CONNECT = "cannot connect to provider"
ERR_GET_PROVIDER = "cannot get Provider"
ERR_GET_PROVIDER_SECRET = "cannot get Provider Secret"
ERR_NEW_CLIENT = "cannot create new container API client"
ERR_OBSERVE = "cannot observe external resource"
ERR_CREATE = "cannot create external resource"
ERR_UPDATE = "cannot update external resource"
ERR_DELETE = "cannot delete external resource"
ERR_UPDATE_SPEC = "cannot update managed resource spec"
ERR_UPDATE_STATUS = "cannot update managed resource status"
ERR_PUBLISH = "cannot publish connection details"
ERR_ADD_FINALIZER = "cannot add finalizer"
ERR_REMOVE_FINALIZER = "cannot remove finalizer"
ERR_NOT_NODE_POOL = "managed resource is not a NodePool"
ERR_NOT_CLUSTER = "managed resource is not a GKECluster"

# Event Reasons
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_SUCCEEDED = "ValidateSucceeded"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_CREATED = "CreatedExternalResource"
EVENT_REASON_UPDATED = "UpdatedExternalResource"
EVENT_REASON_DELETED = "DeletedExternalResource"
EVENT_REASON_LATE_INITIALIZED = "LateInitializedSpec"
EVENT_REASON_CONNECTION_PUBLISHED = "PublishedConnectionDetails"
