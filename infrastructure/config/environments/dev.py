"""Development environment configuration."""

import os

dev_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "compute_target": "lambda",
    "build_source": "local",
    "target_arch": "arm64",
    "exporter_type": "prometheus",
    "log_level": "debug",
    "log_retention_days": 7,
    # Primary collector sizing (Lambda)
    "collector_memory": 1024,
    "collector_timeout": 300,
    "schedule_interval_minutes": 5,
    # RDS events collector (EventBridge -> Lambda)
    "enable_events_collector": False,
    "events_sources": ["aws.rds"],
    "tags": {
        "Environment": "dev",
        "Project": "DatabaseCollector",
        "Owner": "PlatformTeam",
    },
}
