# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Collection names and their unique fields."""

from dotportion.db.store import Collection, DocumentStore

USERS = "users"
WAITLISTS = "waitlists"
FEEDBACK = "feedback"
ACTIVITY_LOGS = "user_activity_logs"
EXECUTIONS = "executions"
SECRETS = "secrets"

UNIQUE_FIELDS = {
    USERS: ("email", "name", "cognito_sub"),
    WAITLISTS: ("email",),
    EXECUTIONS: ("execution_id",),
}


def get_collection(store: DocumentStore, name: str) -> Collection:
    return store.collection(name, UNIQUE_FIELDS.get(name, ()))
