"""Firestore collection names and document paths (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when you first write a document. Use these helpers so paths stay consistent
between the Firestore and in-memory stores and act as the single source of
truth for the "schema".

Layout:
    users/{user_id}                                   directory (tenant_id field)
    approvalFlows/{process_type}                      global flow fallback
    companies/{tenant}/approvalFlows/{process_type}   tenant flow
    companies/{tenant}/{request collection}/{id}      approvable requests
    companies/{tenant}/tasks/{task_id}                approval tasks
"""

COLLECTION_USERS = "users"
COLLECTION_COMPANIES = "companies"
COLLECTION_APPROVAL_FLOWS = "approvalFlows"
COLLECTION_TASKS = "tasks"

# Process types whose requests live in a differently named collection.
REQUEST_COLLECTIONS: dict[str, str] = {
    "access": "access",
    "company_creation": "companies",
    "fleet": "fleet",
    "removal": "removals",
    "training": "training",
}


def request_collection(process_type: str) -> str:
    """Collection holding requests of a process type (defaults to the process type)."""
    return REQUEST_COLLECTIONS.get(process_type, process_type)


def user_path(user_id: str) -> str:
    return f"{COLLECTION_USERS}/{user_id}"


def tenant_root(tenant_id: str) -> str:
    return f"{COLLECTION_COMPANIES}/{tenant_id}"


def tenant_flow_path(tenant_id: str, process_type: str) -> str:
    return f"{tenant_root(tenant_id)}/{COLLECTION_APPROVAL_FLOWS}/{process_type}"


def global_flow_path(process_type: str) -> str:
    return f"{COLLECTION_APPROVAL_FLOWS}/{process_type}"


def requests_collection_path(tenant_id: str, process_type: str) -> str:
    return f"{tenant_root(tenant_id)}/{request_collection(process_type)}"


def request_path(tenant_id: str, process_type: str, request_id: str) -> str:
    return f"{requests_collection_path(tenant_id, process_type)}/{request_id}"


def tasks_collection_path(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/{COLLECTION_TASKS}"


def task_path(tenant_id: str, task_id: str) -> str:
    return f"{tasks_collection_path(tenant_id)}/{task_id}"
