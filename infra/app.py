"""CDK application entry point for the network infrastructure.

This module reads the network configuration from the environment and
declares the VPC stack and the EC2 stack that depends on it.
"""
import logging

import aws_cdk as cdk
from awsnetwork.schema import NetworkConfig
from awsnetworkinfra.topology import create_stacks

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")

app = cdk.App()

config = NetworkConfig.from_settings()

vpc_stack, ec2_stack = create_stacks(app, config)

app.synth()
