import pytest

from infrastructure.core.composition import CompositionPass, CompositionStage
from infrastructure.core.errors import CompositionError, DependencyOrderingError


def test_pass_starts_unconfigured_and_advances_one_stage_at_a_time() -> None:
    composition = CompositionPass()
    assert composition.stage is CompositionStage.UNCONFIGURED

    for stage in list(CompositionStage)[1:]:
        composition.advance(stage)
        assert composition.stage is stage


def test_skipping_a_stage_is_an_ordering_error() -> None:
    composition = CompositionPass()
    composition.advance(CompositionStage.CONFIG_RESOLVED)

    with pytest.raises(DependencyOrderingError):
        composition.advance(CompositionStage.NETWORK_RESOLVED)
    assert composition.stage is CompositionStage.CONFIG_RESOLVED


def test_consumer_before_producer_is_rejected() -> None:
    """
    Given: a pass that has only resolved config
    When: the trigger binder asks for compute targets
    Then: DependencyOrderingError names the consumer
    """
    composition = CompositionPass()
    composition.advance(CompositionStage.CONFIG_RESOLVED)

    with pytest.raises(DependencyOrderingError, match="trigger binder"):
        composition.require(CompositionStage.COMPUTE_TARGET_CREATED, consumer="trigger binder")

    composition.require(CompositionStage.CONFIG_RESOLVED, consumer="access policy builder")


def test_ordering_error_is_a_composition_error() -> None:
    assert issubclass(DependencyOrderingError, CompositionError)
    assert issubclass(DependencyOrderingError, RuntimeError)
