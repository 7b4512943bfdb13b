"""IAM helpers and the access policy builder for the collector."""

from . import utils  # noqa: F401
from .access_policy import AccessScope, AccessStatement, build_access_scope
from .collector_access_role import CollectorAccessRoleConstruct

__all__ = ["utils", "AccessScope", "AccessStatement", "build_access_scope", "CollectorAccessRoleConstruct"]
