import os
from contextlib import contextmanager
from unittest import mock

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from awsnetwork.schema import NetworkConfig, env_prefix

_AMBIENT_VARS = ("CDK_DEFAULT_ACCOUNT", "CDK_DEFAULT_REGION", "AWS_REGION")


def has_aws_creds():
    try:
        boto3.client("sts").get_caller_identity()
        return True
    except (BotoCoreError, ClientError):
        return False


@contextmanager
def network_env(**variables: str):
    """Run with only the given network settings visible in the environment."""
    with mock.patch.dict(os.environ):
        for key in list(os.environ):
            if key.startswith(env_prefix) or key in _AMBIENT_VARS:
                del os.environ[key]
        os.environ.update(variables)
        yield


def make_config(**overrides) -> NetworkConfig:
    with network_env():
        return NetworkConfig.from_settings(**overrides)


def select_import(export: str, index: int) -> dict:
    """The template fragment picking one ID out of a comma-joined export."""
    return {
        "Fn::Select": [
            index,
            {"Fn::Split": [",", {"Fn::ImportValue": export}]},
        ]
    }
