"""Tests for the durable-params CLI."""

import json
import textwrap

import pytest
from typer.testing import CliRunner

from durable_params.cli.__main__ import app

SCHEMA_SOURCE = textwrap.dedent("""
    from durable_params import Attribute, ParamSchema, transforms


    class UserParams(ParamSchema):
        ALLOW = ("name", "email", Attribute("role", only="create"), Attribute("tags", array=True))
        DENY = ("admin",)
        METADATA = ("ip_address",)

        @transforms("email")
        def normalize_email(value, metadata):
            return value.strip().lower()


    NOT_A_SCHEMA = 42
""")


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A working directory holding a schema module and an input document."""
    (tmp_path / "schemas.py").write_text(SCHEMA_SOURCE)
    (tmp_path / "input.json").write_text(json.dumps({
        "user": {
            "name": "John",
            "email": " JOHN@EXAMPLE.COM ",
            "admin": True,
            "role": "owner",
            "tags": ["a"],
        },
    }))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCLIBasics:
    """Tests for version and the root callback."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "durable-params version" in result.output

    def test_missing_command(self):
        result = self.runner.invoke(app, [])
        assert result.exit_code == 1
        assert "Missing command" in result.output


class TestAttributesCommand:
    """Tests for 'durable-params attributes'."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_prints_permitted_attributes(self, project):
        result = self.runner.invoke(app, ["attributes", f"{project / 'schemas.py'}:UserParams"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["name", "email", "role", {"tags": []}]

    def test_action(self, project):
        result = self.runner.invoke(
            app, ["attributes", f"{project / 'schemas.py'}:UserParams", "--action", "update"]
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["name", "email", {"tags": []}]

    def test_module_path_from_project_root(self, project):
        result = self.runner.invoke(app, ["attributes", "schemas:UserParams", "--project-root", str(project)])
        assert result.exit_code == 0
        assert "email" in json.loads(result.stdout)

    def test_describe(self, project):
        result = self.runner.invoke(app, ["attributes", f"{project / 'schemas.py'}:UserParams", "--describe"])
        assert result.exit_code == 0
        description = json.loads(result.stdout)
        assert description["name"] == "UserParams"
        assert description["denied"] == ["admin"]
        assert description["transformations"] == ["email"]

    def test_not_a_schema(self, project):
        result = self.runner.invoke(app, ["attributes", f"{project / 'schemas.py'}:NOT_A_SCHEMA"])
        assert result.exit_code == 1
        assert "is not a ParamSchema subclass" in result.output

    def test_unknown_name(self, project):
        result = self.runner.invoke(app, ["attributes", f"{project / 'schemas.py'}:GhostParams"])
        assert result.exit_code == 1
        assert "defines no 'GhostParams'" in result.output

    def test_missing_file(self, project):
        result = self.runner.invoke(app, ["attributes", f"{project / 'nowhere.py'}:UserParams"])
        assert result.exit_code == 1
        assert "Schema file not found" in result.output

    def test_bad_reference(self, project):
        result = self.runner.invoke(app, ["attributes", "no_colon_here"])
        assert result.exit_code == 1
        assert "Could not load schema" in result.output


class TestPermitCommand:
    """Tests for 'durable-params permit'."""

    def setup_method(self):
        self.runner = CliRunner()

    def invoke(self, project, *args):
        return self.runner.invoke(
            app, ["permit", str(project / "input.json"), f"{project / 'schemas.py'}:UserParams", *args]
        )

    def test_permit_required_key(self, project):
        result = self.invoke(project, "--require", "user", "--action", "update")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"name": "John", "email": "john@example.com", "tags": ["a"]}

    def test_without_require(self, project):
        result = self.invoke(project)
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {}

    def test_yaml_input(self, project):
        (project / "input.yaml").write_text(textwrap.dedent("""
            user:
              name: Jane
              admin: true
        """))
        result = self.runner.invoke(
            app,
            ["permit", str(project / "input.yaml"), f"{project / 'schemas.py'}:UserParams", "-r", "user"],
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"name": "Jane"}

    def test_missing_required_key(self, project):
        result = self.invoke(project, "--require", "account")
        assert result.exit_code == 1
        assert "param is missing or the value is empty: account" in result.output
        assert "Available keys: user" in result.output

    def test_undeclared_metadata(self, project):
        result = self.invoke(project, "--require", "user", "--metadata", "agent=curl")
        assert result.exit_code == 1
        assert "Metadata key(s) 'agent' not allowed for UserParams." in result.output

    def test_declared_metadata(self, project):
        result = self.invoke(project, "--require", "user", "-m", "ip_address=10.0.0.1")
        assert result.exit_code == 0

    def test_malformed_metadata_ignored(self, project):
        result = self.invoke(project, "--require", "user", "-m", "oops")
        assert result.exit_code == 0
        assert "ignoring malformed metadata 'oops'" in result.output

    def test_additional_attributes(self, project):
        result = self.invoke(project, "-r", "user", "--also", "admin", "--action", "update")
        assert result.exit_code == 0
        assert "admin" in json.loads(result.stdout)

    def test_raise_policy_option(self, project):
        result = self.invoke(project, "--require", "user", "--on-unpermitted", "raise")
        assert result.exit_code == 1
        assert "found unpermitted parameters: admin" in result.output

    def test_raise_policy_from_pyproject(self, project):
        (project / "pyproject.toml").write_text(textwrap.dedent("""
            [tool.durable_params]
            action_on_unpermitted_parameters = "raise"
        """))
        result = self.invoke(project, "--require", "user")
        assert result.exit_code == 1
        assert "found unpermitted parameters: admin" in result.output

    def test_invalid_policy_option(self, project):
        result = self.invoke(project, "--on-unpermitted", "explode")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_output_file(self, project):
        target = project / "out.json"
        result = self.invoke(project, "--require", "user", "--output", str(target))
        assert result.exit_code == 0
        assert json.loads(target.read_text())["name"] == "John"
        assert "Wrote permitted parameters" in result.output

    def test_required_scalar(self, project):
        (project / "scalar.json").write_text(json.dumps({"user": "John"}))
        result = self.runner.invoke(
            app,
            ["permit", str(project / "scalar.json"), f"{project / 'schemas.py'}:UserParams", "-r", "user"],
        )
        assert result.exit_code == 1
        assert "does not hold a mapping" in result.output

    def test_top_level_must_be_mapping(self, project):
        (project / "list.json").write_text("[1, 2]")
        result = self.runner.invoke(
            app, ["permit", str(project / "list.json"), f"{project / 'schemas.py'}:UserParams"]
        )
        assert result.exit_code == 1
        assert "must contain a mapping" in result.output

    def test_unreadable_input(self, project):
        (project / "broken.json").write_text("{not json")
        result = self.runner.invoke(
            app, ["permit", str(project / "broken.json"), f"{project / 'schemas.py'}:UserParams"]
        )
        assert result.exit_code == 1
        assert "Could not read" in result.output
