"""Production environment configuration."""

import os

prod_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    # Long-lived collector process; VPC identifiers come from context (vpcId/subnetIds)
    "compute_target": "fargate",
    "build_source": "local",
    "run_mode": "CRON",
    "target_arch": "arm64",
    "collector_source_path": "collector",
    "collector_dockerfile": "build/Dockerfile",
    "exporter_type": "prometheus",
    "log_level": "info",
    "log_retention_days": 30,
    "fargate_cpu": 1024,
    "fargate_memory": 2048,
    "fargate_desired_count": 1,
    "enable_events_collector": True,
    "events_collector_memory": 1024,
    "events_collector_timeout": 300,
    "events_sources": ["aws.rds"],
    "tags": {
        "Environment": "prod",
        "Project": "DatabaseCollector",
        "Owner": "PlatformTeam",
    },
}
