"""AWS Lambda handler for inventory scans.

Deployed as a Lambda function triggered by an EventBridge rule. Each
invocation runs one scan, optionally restricted to some resource types.

Event format:
  {}
  {"types": ["aws_iam_user", "aws_s3_bucket"]}
"""

from __future__ import annotations

import json
import logging
import os

from scripts.inventory.cli import open_scanner
from scripts.inventory.config import load_config
from scripts.inventory.errors import ScanCancelled, ScanError
from scripts.inventory.logging_config import configure_logging

logger = logging.getLogger("inventory.lambda")


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    types = event.get("types") or None
    if types is not None and not isinstance(types, list):
        return {"statusCode": 400, "body": "'types' must be a list of resource types"}

    logger.info("Lambda invoked for types=%s", types or "all")

    try:
        config = load_config()
        with open_scanner(config, types) as (scanner, db):
            result = scanner.scan_with_tracking(db)
    except ValueError as exc:
        return {"statusCode": 400, "body": json.dumps({"error": str(exc)})}
    except (ScanError, ScanCancelled) as exc:
        logger.error("Scan failed: %s", exc, exc_info=True)
        return {"statusCode": 500, "body": json.dumps({"error": str(exc)})}

    counts = {typ: len(res) for typ, res in sorted(result.resources.items())}
    return {
        "statusCode": 200,
        "body": json.dumps({
            "resources": counts,
            "ignored_types": result.ignored_types(),
        }),
    }
