"""Template lookup helpers shared by the CDK tests."""

from __future__ import annotations

from typing import Any

from aws_cdk.assertions import Template


def to_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def find_role(template: Template, role_suffix: str) -> dict:
    resources = template.find_resources("AWS::IAM::Role")
    for res in resources.values():
        role_name = res.get("Properties", {}).get("RoleName", "")
        if isinstance(role_name, str) and role_name.endswith(role_suffix):
            return res
    raise AssertionError(f"Role with suffix '{role_suffix}' not found")


def find_role_logical_id(template: Template, role_suffix: str) -> str:
    resources = template.find_resources("AWS::IAM::Role")
    for logical_id, res in resources.items():
        role_name = res.get("Properties", {}).get("RoleName", "")
        if isinstance(role_name, str) and role_name.endswith(role_suffix):
            return logical_id
    raise AssertionError(f"Role with suffix '{role_suffix}' not found")


def policy_statements(role: dict, policy_name: str) -> list[dict]:
    for policy in role.get("Properties", {}).get("Policies", []):
        if policy.get("PolicyName") == policy_name:
            document = policy.get("PolicyDocument", {})
            return document.get("Statement", [])
    return []


def role_actions(role: dict) -> list[str]:
    actions: list[str] = []
    for policy in role.get("Properties", {}).get("Policies", []):
        for statement in policy.get("PolicyDocument", {}).get("Statement", []):
            actions.extend(to_list(statement.get("Action")))
    return actions


def collector_functions(template: Template) -> dict[str, dict]:
    """Return Lambda functions keyed by FunctionName (skips CDK helper functions)."""
    functions: dict[str, dict] = {}
    for res in template.find_resources("AWS::Lambda::Function").values():
        name = res.get("Properties", {}).get("FunctionName")
        if isinstance(name, str):
            functions[name] = res
    return functions
