"""Tests for transform-then-permit composition."""

import pytest

from durable_params import (
    INFER,
    Attribute,
    MetadataNotAllowed,
    ParamSchema,
    ParameterTree,
    SchemaRegistry,
    UnpermittedParameters,
    configure,
    transform_and_permit,
    transforms,
)


def make_user_schema(**class_kwargs):
    class UserParams(ParamSchema, **class_kwargs):
        ALLOW = (
            "name",
            "email",
            Attribute("role", only="create"),
            Attribute("tags", array=True),
        )
        DENY = ("admin",)
        METADATA = ("ip_address",)

        @transforms("email")
        def normalize_email(value, metadata):
            return value.strip().lower()

        @transforms("name")
        def sign_name(value, metadata):
            user = metadata.get("current_user")
            return f"{value} ({user})" if user else value

    return UserParams


class TestExplicitSchema:
    """Tests with an explicit schema class."""

    def test_action_filters_attributes(self):
        class StatusParams(ParamSchema):
            ALLOW = ("name", Attribute("status", only=["create"]))

        params = ParameterTree({"name": "x", "status": "y"})
        assert params.transform(StatusParams, action="update").to_dict() == {"name": "x"}
        assert params.transform(StatusParams, action="create").to_dict() == {"name": "x", "status": "y"}

    def test_transforms_then_permits(self):
        schema = make_user_schema()
        params = ParameterTree({
            "name": "John",
            "email": " JOHN@EXAMPLE.COM ",
            "admin": True,
            "tags": ["a", "b"],
            "role": "owner",
        })
        permitted = params.transform(schema, action="update")
        assert permitted.to_dict() == {"name": "John", "email": "john@example.com", "tags": ["a", "b"]}
        assert permitted.permitted is True

    def test_no_action_skips_only_except(self):
        params = ParameterTree({"role": "owner"})
        assert params.transform(make_user_schema()).to_dict() == {"role": "owner"}

    def test_source_untouched(self):
        params = ParameterTree({"email": " A@B.C ", "admin": True})
        params.transform(make_user_schema())
        assert params.to_dict() == {"email": " A@B.C ", "admin": True}
        assert params.permitted is False

    def test_additional_attrs(self):
        params = ParameterTree({"name": "x", "nickname": "y", "links": ["a"]})
        permitted = params.transform(make_user_schema(), additional_attrs=["nickname", {"links": []}])
        assert permitted.to_dict() == {"name": "x", "nickname": "y", "links": ["a"]}

    def test_additional_attrs_single_name(self):
        params = ParameterTree({"nickname": "y"})
        assert params.transform(make_user_schema(), additional_attrs="nickname").to_dict() == {"nickname": "y"}

    def test_none_schema_gives_empty_permitted(self):
        permitted = ParameterTree({"name": "x"}).transform(None)
        assert permitted.to_dict() == {}
        assert permitted.permitted is True

    def test_function_form(self):
        params = ParameterTree({"name": "x", "admin": True})
        assert transform_and_permit(params, make_user_schema()).to_dict() == {"name": "x"}

    def test_transform_errors_propagate(self):
        class AgeParams(ParamSchema):
            ALLOW = ("age",)

            @transforms("age")
            def parse_age(value, metadata):
                return int(value)

        with pytest.raises(ValueError):
            ParameterTree({"age": "old"}).transform(AgeParams)

    def test_raise_policy_applies(self):
        configure(action_on_unpermitted_parameters="raise")
        with pytest.raises(UnpermittedParameters) as exc_info:
            ParameterTree({"name": "x", "admin": True}).transform(make_user_schema())
        assert exc_info.value.params == ["admin"]


class TestMetadata:
    """Tests for call-time metadata validation."""

    def test_current_user_always_allowed(self):
        params = ParameterTree({"name": "John"})
        permitted = params.transform(make_user_schema(), current_user="alice")
        assert permitted["name"] == "John (alice)"

    def test_declared_metadata_allowed(self):
        params = ParameterTree({"name": "John"})
        assert params.transform(make_user_schema(), ip_address="10.0.0.1").to_dict() == {"name": "John"}

    def test_undeclared_metadata_rejected(self):
        params = ParameterTree({"name": "John"})
        with pytest.raises(MetadataNotAllowed) as exc_info:
            params.transform(make_user_schema(), user_agent="curl", referer="x", current_user="a")
        assert exc_info.value.keys == ["user_agent", "referer"]
        assert exc_info.value.schema_name == "UserParams"
        assert "METADATA = ('user_agent', 'referer')" in str(exc_info.value)

    def test_rejected_before_transformations_run(self):
        calls = []

        class Tracked(ParamSchema):
            ALLOW = ("name",)

            @transforms("name")
            def track(value, metadata):
                calls.append(value)
                return value

        with pytest.raises(MetadataNotAllowed):
            ParameterTree({"name": "x"}).transform(Tracked, secret="y")
        assert calls == []

    def test_transformations_see_control_options(self):
        seen = {}

        class Tracked(ParamSchema):
            ALLOW = ("name",)

            @transforms("name")
            def track(value, metadata):
                seen.update(metadata)
                return value

        ParameterTree({"name": "x"}).transform(Tracked, action="create", current_user="bob")
        assert seen == {"action": "create", "current_user": "bob"}


class TestSchemaInference:
    """Tests for resolving the schema through the registry."""

    def test_infer_from_required_key(self):
        make_user_schema(model="user")
        params = ParameterTree({"user": {"name": "John", "admin": True}})
        assert params.require("user").transform().to_dict() == {"name": "John"}

    def test_infer_through_nested_require(self):
        make_user_schema(model="user")
        params = ParameterTree({"user": {"profile": {"name": "John", "bio": "x"}}})
        assert params.require("user").require("profile").transform().to_dict() == {"name": "John"}

    def test_infer_without_required_key(self):
        make_user_schema(model="user")
        permitted = ParameterTree({"name": "John"}).transform()
        assert permitted.to_dict() == {}
        assert permitted.permitted is True

    def test_registry_miss(self):
        permitted = ParameterTree({"widget": {"a": 1}}).require("widget").transform(INFER)
        assert permitted.to_dict() == {}
        assert permitted.permitted is True

    def test_schema_by_name(self):
        make_user_schema(model="User")
        params = ParameterTree({"name": "x", "admin": True})
        assert params.transform("user").to_dict() == {"name": "x"}

    def test_explicit_registry(self, registry):
        schema = make_user_schema()
        registry.register("account", schema)
        params = ParameterTree({"account": {"name": "x", "admin": True}})
        assert params.require("account").transform(registry=registry).to_dict() == {"name": "x"}
        assert params.require("account").transform().to_dict() == {}

    def test_permit_by_model(self):
        make_user_schema(model="user")
        params = ParameterTree({"name": "x", "role": "owner"})
        assert params.permit_by_model("user", action="update").to_dict() == {"name": "x"}
        assert params.permit_by_model("user", action="create").to_dict() == {"name": "x", "role": "owner"}

    def test_permit_by_model_additional_attrs(self):
        registry = SchemaRegistry()
        registry.register("user", make_user_schema())
        params = ParameterTree({"name": "x", "extra": 1})
        permitted = params.permit_by_model("user", additional_attrs=["extra"], registry=registry)
        assert permitted.to_dict() == {"name": "x", "extra": 1}

    def test_permit_by_model_unregistered(self):
        assert ParameterTree({"name": "x"}).permit_by_model("ghost").to_dict() == {}
