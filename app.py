#!/usr/bin/env python3
"""
Database Collector CDK App
Scheduled database metrics collection with least-privilege access to tagged secrets.
"""

import aws_cdk as cdk

from infrastructure.stacks.database_collector_stack import DatabaseCollectorStack

# Configuration
from infrastructure.config.environments import get_environment_config

app = cdk.App()

# Get environment configuration
environment = app.node.try_get_context("environment") or "dev"
config = get_environment_config(environment)

# CDK environment (account/region)
cdk_env = cdk.Environment(account=config.get("account_id"), region=config.get("region", "ap-northeast-2"))

collector_stack = DatabaseCollectorStack(
    app,
    f"DatabaseCollector-{environment}",
    environment=environment,
    config=config,
    env=cdk_env,
)

# ========================================
# TAGGING STRATEGY
# ========================================

cdk.Tags.of(app).add("Environment", environment)
cdk.Tags.of(app).add("Platform", "DatabaseCollector")
cdk.Tags.of(app).add("ManagedBy", "CDK")

for key, value in (config.get("tags") or {}).items():
    cdk.Tags.of(collector_stack).add(key, str(value))

app.synth()
