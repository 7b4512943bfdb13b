#!/usr/bin/env python3
"""Deployment script for the database collector CDK application."""

import argparse
import os
import shlex
import subprocess
import sys
from typing import List, Mapping, Optional, Sequence


def run_command(
    command: Sequence[str], *, check: bool = True, env: Optional[Mapping[str, str]] = None
) -> subprocess.CompletedProcess[str]:
    """Execute a subprocess without shell interpolation."""

    printable = " ".join(shlex.quote(part) for part in command)
    print(f"Running: {printable}")

    result = subprocess.run(command, capture_output=True, text=True, env=env, check=False)

    if check and result.returncode != 0:
        print(f"Command failed with return code {result.returncode}")
        if result.stdout:
            print(f"stdout: {result.stdout}")
        if result.stderr:
            print(f"stderr: {result.stderr}")
        sys.exit(result.returncode)

    return result


def context_arguments(environment: str, context: Sequence[str]) -> List[str]:
    """Build ``--context`` arguments; the environment name always comes first."""
    arguments = ["--context", f"environment={environment}"]
    for pair in context:
        key, sep, _ = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Context must be key=value, got '{pair}'")
        arguments.extend(["--context", pair])
    return arguments


def deploy_stacks(environment: str, context: Sequence[str] = (), region: Optional[str] = None) -> None:
    """Deploy the collector stack to the specified environment."""
    print(f"Deploying to environment: {environment}")

    exec_env = {**os.environ}
    if region:
        exec_env["CDK_DEFAULT_REGION"] = region
    cdk_context = context_arguments(environment, context)

    # Bootstrap CDK if needed
    print("Checking CDK bootstrap status...")
    run_command(["cdk", "bootstrap", *cdk_context], check=False, env=exec_env)

    deploy_cmd = ["cdk", "deploy", f"DatabaseCollector-{environment}", *cdk_context, "--require-approval", "never"]
    run_command(deploy_cmd, env=exec_env)
    print(f"Deployment to {environment} completed successfully!")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main deployment function."""
    parser = argparse.ArgumentParser(description="Deploy the database collector CDK stack")
    parser.add_argument(
        "--environment", "-e", choices=["dev", "staging", "prod"], default="dev", help="Target environment"
    )
    parser.add_argument(
        "--context",
        "-c",
        action="append",
        default=[],
        help="Context override, e.g. -c subnetIds=subnet-1,subnet-2 -c prometheusUrl=https://...",
    )
    parser.add_argument("--region", help="Override CDK_DEFAULT_REGION")

    args = parser.parse_args(argv)
    deploy_stacks(args.environment, args.context, args.region)


if __name__ == "__main__":
    main()
