import pytest
from aws_cdk import App, Stack

from infrastructure.core.errors import ConfigurationError
from infrastructure.core.network import (
    NetworkPlacement,
    bind_network_placement,
    function_network_options,
    resolve_network_placement,
)
from infrastructure.core.variant import BuildSource, ComputeKind, DeploymentVariant

ATTACHED = DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL, network_attached=True)
DETACHED = DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL)


def test_detached_variant_has_no_placement() -> None:
    assert resolve_network_placement(DETACHED, vpc_id="vpc-1", subnet_ids=("subnet-1",)) is None
    assert function_network_options(None) == {}


def test_placement_keeps_subnet_order() -> None:
    placement = resolve_network_placement(
        ATTACHED, vpc_id="vpc-0abc", subnet_ids=("subnet-2", "subnet-1"), security_group_ids=("sg-1",)
    )

    assert placement == NetworkPlacement("vpc-0abc", ("subnet-2", "subnet-1"), ("sg-1",))


@pytest.mark.parametrize("subnet_ids", [None, ()])
def test_missing_subnets_are_rejected(subnet_ids) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_network_placement(ATTACHED, vpc_id="vpc-1", subnet_ids=subnet_ids)
    assert excinfo.value.key == "subnetIds"


def test_missing_vpc_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_network_placement(ATTACHED, vpc_id=None, subnet_ids=("subnet-1",))
    assert excinfo.value.key == "vpcId"


@pytest.mark.parametrize(
    "kwargs, key",
    [
        ({"vpc_id": "vpc_1", "subnet_ids": ("subnet-1",)}, "vpcId"),
        ({"vpc_id": "vpc-1", "subnet_ids": ("subnet-1", "sn-2")}, "subnetIds"),
        ({"vpc_id": "vpc-1", "subnet_ids": ("subnet-1", "", "subnet-2")}, "subnetIds"),
        ({"vpc_id": "vpc-1", "subnet_ids": ("subnet-1",), "security_group_ids": ("group-1",)}, "securityGroupIds"),
        ({"vpc_id": "vpc-1", "subnet_ids": ("subnet-1",), "security_group_ids": ()}, "securityGroupIds"),
    ],
)
def test_malformed_identifiers_are_rejected(kwargs, key: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_network_placement(ATTACHED, **kwargs)
    assert excinfo.value.key == key


def test_binding_imports_each_identifier() -> None:
    app = App()
    stack = Stack(app, "NetworkStack")
    placement = NetworkPlacement("vpc-1", ("subnet-1", "subnet-2"), ("sg-1",))

    binding = bind_network_placement(stack, placement)

    assert binding is not None
    assert binding.vpc.vpc_id == "vpc-1"
    assert [subnet.subnet_id for subnet in binding.subnets] == ["subnet-1", "subnet-2"]
    assert [group.security_group_id for group in binding.security_groups] == ["sg-1"]

    options = function_network_options(binding)
    assert options["vpc"] is binding.vpc
    assert options["security_groups"] == list(binding.security_groups)
    assert [subnet.subnet_id for subnet in options["vpc_subnets"].subnets] == ["subnet-1", "subnet-2"]


def test_binding_without_security_groups_omits_them() -> None:
    app = App()
    stack = Stack(app, "NetworkNoGroupsStack")

    binding = bind_network_placement(stack, NetworkPlacement("vpc-1", ("subnet-1",)))

    assert "security_groups" not in function_network_options(binding)
    assert bind_network_placement(stack, None) is None
