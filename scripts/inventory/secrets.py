"""Secret resolution.

Resolves secret references through AWS Secrets Manager, falling back to
plain environment values for local development.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

import boto3

logger = logging.getLogger("inventory.secrets")

# Prefix that indicates a cloud secret reference
_AWS_PREFIX = "aws-secret://"


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value.

    Supported formats:
      - "aws-secret://secret-name"         -> AWS Secrets Manager
      - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
      - anything else                      -> returned as-is (env var / literal)
    """
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    """Fetch a secret from AWS Secrets Manager.

    ref format: "secret-name" or "secret-name#json_key"
    """
    parts = ref.split("#", 1)
    secret_name = parts[0]
    json_key = parts[1] if len(parts) > 1 else None

    region = os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)

    logger.debug("Resolving secret %s from Secrets Manager", secret_name)
    resp = client.get_secret_value(SecretId=secret_name)
    secret_string = resp["SecretString"]

    if json_key:
        data = json.loads(secret_string)
        return str(data[json_key])
    return secret_string


def resolve_database_url() -> Optional[str]:
    """Resolve DATABASE_URL from env, with secret support. None when unset."""
    url = os.environ.get("DATABASE_URL", "")
    if url:
        return resolve_secret(url)

    host = os.environ.get("PG_HOST", "")
    if not host:
        return None

    port = os.environ.get("PG_PORT", "5432")
    user = os.environ.get("PG_USER", "inventory")
    password = resolve_secret(os.environ.get("PG_PASSWORD", ""))
    database = os.environ.get("PG_DATABASE", "cloud_inventory")

    return f"postgresql://{user}:{password}@{host}:{port}/{database}"
