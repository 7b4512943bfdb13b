"""Staging environment configuration."""

import os

staging_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "compute_target": "lambda",
    "build_source": "local",
    "target_arch": "arm64",
    "exporter_type": "prometheus",
    "log_level": "info",
    "log_retention_days": 14,
    "collector_memory": 1024,
    "collector_timeout": 300,
    "schedule_interval_minutes": 5,
    "enable_events_collector": True,
    "events_collector_memory": 1024,
    "events_collector_timeout": 300,
    "events_sources": ["aws.rds"],
    "tags": {
        "Environment": "staging",
        "Project": "DatabaseCollector",
        "Owner": "PlatformTeam",
    },
}
