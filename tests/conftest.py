import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest


pytest_plugins = [
    "tests.fixtures.collector_env",
]

# Ensure project root is importable at collection time (module import stage)
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region and dummy credentials for moto/boto3 clients."""
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    # Provide dummy credentials so botocore signing doesn't fail under moto
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    # Keep CDK from picking up the caller's account/region
    monkeypatch.delenv("CDK_DEFAULT_ACCOUNT", raising=False)
    monkeypatch.delenv("CDK_DEFAULT_REGION", raising=False)
    yield


@pytest.fixture
def fake_go_function(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[Any], list[dict[str, Any]]]:
    """Replace GoFunction with an inline Python function to avoid Go bundling.

    Returns the list of keyword arguments each GoFunction call received.
    """

    def _apply(target_module: Any) -> list[dict[str, Any]]:
        from aws_cdk import aws_lambda as lambda_

        calls: list[dict[str, Any]] = []

        def _fake(scope, id, **kwargs):
            calls.append(dict(kwargs, construct_id=id))
            kwargs.pop("entry", None)
            kwargs.pop("bundling", None)
            kwargs.pop("runtime", None)
            return lambda_.Function(
                scope,
                id,
                runtime=lambda_.Runtime.PYTHON_3_12,
                handler="index.handler",
                code=lambda_.Code.from_inline("def handler(event, context): return {}"),
                **kwargs,
            )

        monkeypatch.setattr(target_module, "GoFunction", _fake, raising=False)
        return calls

    return _apply


def pytest_configure(config):
    """Configure pytest with essential markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "integration: integration test")
    config.addinivalue_line("markers", "infrastructure: CDK synthesis test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    rootdir = Path(config.rootdir)

    for item in items:
        try:
            rel_path = Path(item.fspath).relative_to(rootdir)
        except ValueError:
            continue
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        if "integration" in rel_path.parts:
            item.add_marker(pytest.mark.integration)
        if "infrastructure" in rel_path.parts:
            item.add_marker(pytest.mark.infrastructure)
