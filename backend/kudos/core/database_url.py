"""
Database URL resolution, with RDS credentials pulled from Secrets Manager in Lambda
"""
import json
import logging
import os
import re
import ssl
import urllib.parse
from typing import Optional, Dict, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./kudos.db"


def get_rds_credentials() -> Optional[Dict[str, Any]]:
    """Get RDS credentials from AWS Secrets Manager"""
    secret_arn = os.environ.get("DB_SECRET_ARN")
    if not secret_arn:
        return None

    try:
        secrets_client = boto3.client('secretsmanager')
        response = secrets_client.get_secret_value(SecretId=secret_arn)
        return json.loads(response['SecretString'])
    except (BotoCoreError, ClientError, ValueError) as e:
        logger.warning(f"Failed to get RDS credentials: {e}")
        return None


def create_ssl_context():
    """Create SSL context for RDS connections"""
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


def get_database_url() -> str:
    """Get database URL, filling in RDS credentials when running in Lambda"""
    database_url = settings.DATABASE_URL or os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)

    if not os.environ.get("AWS_LAMBDA_FUNCTION_NAME") or database_url.startswith("sqlite"):
        return database_url

    credentials = get_rds_credentials()
    if not credentials:
        logger.warning("No RDS credentials found, using DATABASE_URL as-is")
        return database_url

    match = re.search(r'postgresql\+asyncpg://[^@]*@([^:/]+):?(\d*)/?(\w*)', database_url)
    if not match:
        logger.error("Could not parse DATABASE_URL host")
        return database_url

    host = match.group(1)
    port = match.group(2) or "5432"
    name = match.group(3) or "kudos"

    # URL encode credentials to handle special characters
    username = urllib.parse.quote(credentials.get('username', 'kudos'), safe='')
    password = urllib.parse.quote(credentials.get('password', ''), safe='')

    logger.info(f"Database config: host={host}, port={port}, db={name}")
    return f"postgresql+asyncpg://{username}:{password}@{host}:{port}/{name}"
