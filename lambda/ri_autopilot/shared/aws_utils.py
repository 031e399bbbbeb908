"""
AWS utility functions for cross-account access and client initialization.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError


logger = logging.getLogger()


def get_assumed_role_session(
    role_arn: str, session_name: str = "ri-autopilot-session"
) -> Optional[boto3.Session]:
    """
    Assume a cross-account role and return a session with temporary credentials.

    Returns:
        boto3.Session with assumed credentials, or None if role_arn is empty

    Raises:
        ClientError: If assume role fails
    """
    if not role_arn:
        return None

    logger.info(f"Assuming role: {role_arn}")

    try:
        response = boto3.client("sts").assume_role(
            RoleArn=role_arn, RoleSessionName=session_name
        )
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_message = e.response.get("Error", {}).get("Message", str(e))
        logger.error(
            f"Failed to assume role {role_arn} - Code: {error_code}, Message: {error_message}"
        )
        raise

    credentials = response["Credentials"]
    logger.info(f"Successfully assumed role, session expires: {credentials['Expiration']}")
    return boto3.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
    )


def get_clients(
    config: Dict[str, Any], session_name: str = "ri-autopilot-session"
) -> Dict[str, Any]:
    """
    Get AWS clients, using an assumed role for Cost Explorer when configured.

    Cost Explorer recommendations live in the management (payer) account;
    SNS and S3 stay on local credentials.
    """
    role_arn = config.get("management_account_role_arn")
    session = get_assumed_role_session(role_arn, session_name) if role_arn else None

    return {
        "ce": session.client("ce") if session else boto3.client("ce"),
        "sns": boto3.client("sns"),
        "s3": boto3.client("s3"),
    }
