"""Module for defining the managed VPC using the L2 ``ec2.Vpc`` construct.

Only public subnets are declared and no NAT gateways, so this VPC can back
the plain instance EC2 stack but not the bastion/NAT variants.
"""

from logging import getLogger

import aws_cdk as cdk
import aws_cdk.aws_ec2 as ec2
from constructs import Construct

from awsnetwork.exports import PUBLIC_SUBNET_IDS, VPC_ID, export_name
from awsnetwork.schema import NetworkConfig

from ._imports import export_ids

logger = getLogger(__name__)


class ManagedVpcStack(cdk.Stack):
    """CDK Stack declaring a public-only VPC through ``ec2.Vpc``."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        config: NetworkConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        # Public subnets only, so no NAT gateways are needed
        self.vpc = ec2.Vpc(
            self,
            "DemoVPC",
            vpc_name="DemoVPC",
            availability_zones=list(config.availability_zones),
            ip_addresses=ec2.IpAddresses.cidr(str(config.vpc_cidr)),
            nat_gateways=0,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
            ],
            enable_dns_hostnames=False,
            enable_dns_support=True,
        )
        logger.debug(
            f"Declared managed VPC in {self.stack_name} across"
            f" {', '.join(config.availability_zones)}"
        )

        cdk.CfnOutput(
            self,
            VPC_ID,
            value=self.vpc.vpc_id,
            description="ID of the VPC",
            export_name=export_name(self.stack_name, VPC_ID),
        )

        export_ids(
            self,
            PUBLIC_SUBNET_IDS,
            [subnet.subnet_id for subnet in self.vpc.public_subnets],
            "Comma separated public subnet IDs, in availability zone order",
        )
