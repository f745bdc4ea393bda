from logging import getLogger
from typing import Tuple

import aws_cdk as cdk
from constructs import Construct

from awsnetwork._tags import stack_tags
from awsnetwork.schema import NetworkConfig, VpcVariant

from .ec2_stack import Ec2Stack
from .managed_vpc_stack import ManagedVpcStack
from .vpc_stack import VpcStack

logger = getLogger(__name__)


def create_stacks(app: Construct, config: NetworkConfig) -> Tuple[cdk.Stack, Ec2Stack]:
    """Declare the VPC stack and the EC2 stack that imports from it."""
    env = cdk.Environment(account=config.account, region=config.region)
    tags = stack_tags(config.extra_tags)

    vpc_stack_class = (
        ManagedVpcStack if config.vpc_variant is VpcVariant.MANAGED else VpcStack
    )
    vpc_stack = vpc_stack_class(
        app,
        config.vpc_stack_name,
        config=config,
        stack_name=config.vpc_stack_name,
        env=env,
        tags=tags,
        synthesizer=_synthesizer(),
    )

    ec2_stack = Ec2Stack(
        app,
        config.ec2_stack_name,
        config=config,
        stack_name=config.ec2_stack_name,
        env=env,
        tags=tags,
        synthesizer=_synthesizer(),
    )

    # Stack tags no longer reach resources under explicitStackTags
    for stack in (vpc_stack, ec2_stack):
        for key, value in tags.items():
            cdk.Tags.of(stack).add(key, value)

    # Imports only resolve once the VPC stack's exports exist
    ec2_stack.add_dependency(vpc_stack)

    logger.info(
        f"Declared {vpc_stack_class.__name__} {config.vpc_stack_name} and"
        f" {config.ec2_variant.value} EC2 stack {config.ec2_stack_name}"
        f" in {config.region}"
    )
    return vpc_stack, ec2_stack


def _synthesizer() -> cdk.DefaultStackSynthesizer:
    return cdk.DefaultStackSynthesizer(generate_bootstrap_version_rule=False)
