"""
OpenAPI schema customizations for drf-spectacular.

This module provides hooks to customize the generated OpenAPI schema,
including summaries for third-party endpoints and tag groupings for
better documentation organization in ReDoc/Swagger UI.

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Auth (JWT token endpoints)
- Orders - Checkout (checkout intents, order placement)
- Payments - Status (order payment info, return probe, retry)
"""

# Natural language summaries for SimpleJWT endpoints
# Maps operation_id to (summary, description)
JWT_SUMMARIES = {
    "auth_token_create": (
        "Obtain tokens",
        "Authenticate with username and password to receive JWT tokens.",
    ),
    "auth_token_refresh_create": (
        "Refresh access token",
        "Get a new access token using a valid refresh token.",
    ),
}


def tag_auth_endpoints(result, generator, request, public):
    """
    Postprocessing hook to group API endpoints by function.

    Groups:
        - Auth: JWT token operations (tagged here)
        - Orders - Checkout: set via tags= in @extend_schema
        - Payments - Status: set via tags= in @extend_schema

    Also adds natural language summaries to SimpleJWT endpoints.
    """
    paths = result.get("paths", {})

    for path, methods in paths.items():
        for method, operation in methods.items():
            if not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId", "")

            if operation_id in JWT_SUMMARIES:
                summary, description = JWT_SUMMARIES[operation_id]
                operation["summary"] = summary
                operation["description"] = description

            if operation_id.startswith("auth_"):
                operation["tags"] = ["Auth"]

    # Add tag descriptions for better documentation
    result["tags"] = [
        {
            "name": "Auth",
            "description": "JWT access and refresh token management.",
        },
        {
            "name": "Orders - Checkout",
            "description": "Checkout intents (priced, single-use snapshots) and order placement.",
        },
        {
            "name": "Payments - Status",
            "description": (
                "Order payment state, browser return probe and payment retry "
                "after the reconciliation window expired."
            ),
        },
    ]

    return result
