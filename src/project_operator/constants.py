"""Constants for the Project Operator."""

# API Groups
TENANT_GROUP = "tenant.kubeclipper.io"
CORE_GROUP = "core.kubeclipper.io"
IAM_GROUP = "iam.kubeclipper.io"
API_VERSION = "v1"

TENANT_GROUP_VERSION = f"{TENANT_GROUP}/{API_VERSION}"
CORE_GROUP_VERSION = f"{CORE_GROUP}/{API_VERSION}"
IAM_GROUP_VERSION = f"{IAM_GROUP}/{API_VERSION}"
RBAC_GROUP = "rbac.authorization.k8s.io"

# Resource Kinds
KIND_PROJECT = "Project"
KIND_CLUSTER = "Cluster"
KIND_NODE = "Node"
KIND_PROJECT_ROLE = "ProjectRole"
KIND_PROJECT_ROLE_BINDING = "ProjectRoleBinding"
KIND_GLOBAL_ROLE_BINDING = "GlobalRoleBinding"
KIND_USER = "User"

# Plurals
PLURAL_PROJECTS = "projects"
PLURAL_CLUSTERS = "clusters"
PLURAL_NODES = "nodes"
PLURAL_PROJECT_ROLES = "projectroles"
PLURAL_PROJECT_ROLE_BINDINGS = "projectrolebindings"
PLURAL_GLOBAL_ROLE_BINDINGS = "globalrolebindings"

# Labels
LABEL_PROJECT = "kubeclipper.io/project"
LABEL_PROJECT_ROLE_BINDING_MANAGER = "kubeclipper.io/project-role-binding-manager"

# Annotations
ANNOTATION_INTERNAL = "kubeclipper.io/internal"
ANNOTATION_AGGREGATION_ROLES = "kubeclipper.io/aggregation-roles"

# Finalizers
FINALIZER = "finalizer.project.kubeclipper.io"

# Field Manager
FIELD_MANAGER = "project-operator"
CONTROLLER_NAME = "project-operator"

# Template whose scoped role the manager binding points at
ADMIN_TEMPLATE = "admin"

# Reconcile phases
PHASE_FETCH = "fetch"
PHASE_FINALIZER = "finalizer"
PHASE_CLEANUP = "cleanup"
PHASE_SCOPED_ROLES = "scoped-roles"
PHASE_MANAGER_BINDING = "manager-binding"
PHASE_MEMBERSHIP = "membership"
PHASE_NODE_LABELS = "node-labels"
PHASE_STATUS = "status"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_FINALIZER_ADDED = "FinalizerAdded"
EVENT_REASON_CLEANUP_COMPLETED = "CleanupCompleted"
EVENT_REASON_MANAGER_ROTATED = "ManagerRotated"
