"""Example schemas used by api_usage.py and the CLI walkthrough.

    durable-params attributes examples/schemas.py:UserParams --action update
    durable-params permit examples/signup.yaml examples/schemas.py:UserParams --require user --action create
"""

from durable_params import Attribute, ParamSchema, transforms


class UserParams(ParamSchema, model="user"):
    ALLOW = (
        "name",
        "email",
        Attribute("role", only="create"),
        Attribute("interests", array=True),
    )
    DENY = ("admin",)
    METADATA = ("ip_address",)
    FLAGS = {"audited": True}

    @transforms("email")
    def normalize_email(value, metadata):
        return value.strip().lower() if isinstance(value, str) else value

    @transforms("name")
    def strip_name(value, metadata):
        return " ".join(value.split()) if isinstance(value, str) else value


class AdminUserParams(UserParams, model="admin_user"):
    ALLOW = ("admin",)
