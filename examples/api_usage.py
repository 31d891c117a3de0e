#!/usr/bin/env python3
"""Example usage of the durable-params programmatic API."""

from __future__ import annotations

from durable_params import (
    ForbiddenAttributes,
    ParameterMissing,
    ParameterTree,
    UnpermittedParameters,
    override_config,
    plain_spec,
    sanitize_for_mass_assignment,
)

from schemas import UserParams

REQUEST = {
    "user": {
        "name": "  Ada   Lovelace ",
        "email": " ADA@EXAMPLE.COM ",
        "role": "owner",
        "admin": True,
        "interests": ["engines", "poetry"],
        "address": {"city": "London", "street": "St James's Square"},
    },
    "controller": "users",
    "action": "update",
}


def main() -> None:
    print("🔒 durable-params API demo")
    params = ParameterTree(REQUEST)

    # 1) Inline whitelist
    user = params.require("user").permit("name", "email", address=["city"])
    print(f"\nInline permit: {user.to_dict()}")

    # 2) Schema inferred from the required key ("user" is registered by schemas.py)
    for action in ("create", "update"):
        permitted = params.require("user").transform(action=action, current_user="admin@example.com")
        print(f"Schema permit ({action}): {permitted.to_dict()}")

    print(f"Permitted attributes for update: {plain_spec(UserParams.permitted_attributes('update'))}")

    # 3) Missing keys come with suggestions
    try:
        params.require("usr")
    except ParameterMissing as exc:
        print(f"\n{exc}")

    # 4) Reject unknown keys instead of dropping them
    with override_config(action_on_unpermitted_parameters="raise"):
        try:
            params.require("user").permit("name")
        except UnpermittedParameters as exc:
            print(f"\nRejected: {exc.params}")

    # 5) Mass-assignment guard
    try:
        sanitize_for_mass_assignment(params.require("user"))
    except ForbiddenAttributes as exc:
        print(f"\nGuard: {exc}")

    print("\n✅ API demo complete")


if __name__ == "__main__":
    main()
