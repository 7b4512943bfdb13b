import pytest

from infrastructure.config.environments import get_environment_config
from infrastructure.config.settings import resolve_collector_settings
from infrastructure.core.errors import ConfigurationError
from infrastructure.core.network import resolve_network_placement
from infrastructure.core.variant import ComputeKind, RunMode


@pytest.mark.parametrize("environment", ["dev", "staging", "prod"])
def test_each_environment_names_a_region_and_tags(environment: str) -> None:
    config = get_environment_config(environment)

    assert config["region"]
    assert config["tags"]["Environment"] == environment


def test_returned_config_is_a_copy() -> None:
    config = get_environment_config("dev")
    config["log_level"] = "error"

    assert get_environment_config("dev")["log_level"] == "debug"


def test_unknown_environment_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        get_environment_config("qa")
    assert excinfo.value.key == "environment"


def test_staging_resolves_with_events_collector() -> None:
    settings = resolve_collector_settings("staging", get_environment_config("staging"))

    assert settings.variant.compute_kind is ComputeKind.LAMBDA
    assert settings.variant.events_trigger is True


def test_prod_needs_network_identifiers_from_context() -> None:
    config = get_environment_config("prod")
    without_ids = resolve_collector_settings("prod", config)
    assert without_ids.variant.network_attached is True

    with pytest.raises(ConfigurationError) as excinfo:
        resolve_network_placement(without_ids.variant, vpc_id=without_ids.vpc_id, subnet_ids=without_ids.subnet_ids)
    assert excinfo.value.key == "vpcId"

    settings = resolve_collector_settings(
        "prod", config, {"vpcId": "vpc-0abc", "subnetIds": "subnet-1,subnet-2"}.get
    )
    assert settings.variant.run_mode is RunMode.CRON
    assert settings.subnet_ids == ("subnet-1", "subnet-2")
