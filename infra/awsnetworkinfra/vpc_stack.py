"""Module for defining the manually declared VPC using AWS CDK.

Every resource is an L1 (Cfn*) construct: the VPC, its internet gateway, one
public and one private subnet per availability zone, a shared public route
table and one private route table per availability zone.

The private route tables start without a default route. The EC2 stack adds
egress routes through its NAT instance or NAT gateway.
"""

from logging import getLogger

import aws_cdk as cdk
import aws_cdk.aws_ec2 as ec2
from constructs import Construct

from awsnetwork.exports import (
    PRIVATE_ROUTE_TABLE_IDS,
    PRIVATE_SUBNET_IDS,
    PUBLIC_SUBNET_IDS,
    VPC_ID,
    export_name,
)
from awsnetwork.schema import NetworkConfig

from ._imports import export_ids

logger = getLogger(__name__)

ANY_IPV4 = "0.0.0.0/0"


def name_tag(name: str) -> list[cdk.CfnTag]:
    return [cdk.CfnTag(key="Name", value=name)]


class VpcStack(cdk.Stack):
    """CDK Stack declaring a VPC with public and private subnets from L1 constructs.

    Exports the VPC ID and comma-joined lists of the public subnet, private
    subnet and private route table IDs, each named ``{StackName}-{Key}``.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        config: NetworkConfig,
        **kwargs,
    ) -> None:
        """Initialize the VPC stack.

        Args:
            scope: The parent construct.
            id: The construct ID.
            config: Network configuration; CIDRs and AZs are taken from it.
            **kwargs: Additional keyword arguments passed to the parent Stack.
        """
        super().__init__(scope, id, **kwargs)

        self.vpc = ec2.CfnVPC(
            self,
            "DemoVPC",
            cidr_block=str(config.vpc_cidr),
            enable_dns_hostnames=True,
            enable_dns_support=True,
            instance_tenancy="default",
            tags=name_tag("DemoVPC"),
        )

        self.internet_gateway = ec2.CfnInternetGateway(
            self, "DemoIGW", tags=name_tag("DemoIGW")
        )

        gateway_attachment = ec2.CfnVPCGatewayAttachment(
            self,
            "IGWAttachment",
            vpc_id=self.vpc.ref,
            internet_gateway_id=self.internet_gateway.ref,
        )

        self.public_subnets: list[ec2.CfnSubnet] = []
        self.private_subnets: list[ec2.CfnSubnet] = []
        for label, az, public_cidr, private_cidr in zip(
            config.az_labels,
            config.availability_zones,
            config.public_subnet_cidrs,
            config.private_subnet_cidrs,
        ):
            self.public_subnets.append(
                self._subnet(label, az, public_cidr, public=True)
            )
            self.private_subnets.append(
                self._subnet(label, az, private_cidr, public=False)
            )
        logger.debug(
            f"Declared {len(self.public_subnets)} public and"
            f" {len(self.private_subnets)} private subnets in {self.stack_name}"
        )

        self.public_route_table = ec2.CfnRouteTable(
            self,
            "PublicRouteTable",
            vpc_id=self.vpc.ref,
            tags=name_tag("Public Route Table"),
        )

        # The route is only valid once the gateway is attached to the VPC
        public_route = ec2.CfnRoute(
            self,
            "PublicRoute",
            route_table_id=self.public_route_table.ref,
            destination_cidr_block=ANY_IPV4,
            gateway_id=self.internet_gateway.ref,
        )
        public_route.add_dependency(gateway_attachment)

        for label, subnet in zip(config.az_labels, self.public_subnets):
            ec2.CfnSubnetRouteTableAssociation(
                self,
                f"PublicSubnet{label}RouteTableAssociation",
                subnet_id=subnet.ref,
                route_table_id=self.public_route_table.ref,
            )

        self.private_route_tables: list[ec2.CfnRouteTable] = []
        for label, subnet in zip(config.az_labels, self.private_subnets):
            route_table = ec2.CfnRouteTable(
                self,
                f"PrivateRouteTable{label}",
                vpc_id=self.vpc.ref,
                tags=name_tag(f"Private Route Table {label}"),
            )
            ec2.CfnSubnetRouteTableAssociation(
                self,
                f"PrivateSubnet{label}RouteTableAssociation",
                subnet_id=subnet.ref,
                route_table_id=route_table.ref,
            )
            self.private_route_tables.append(route_table)

        cdk.CfnOutput(
            self,
            VPC_ID,
            value=self.vpc.ref,
            description="ID of the VPC",
            export_name=export_name(self.stack_name, VPC_ID),
        )

        export_ids(
            self,
            PUBLIC_SUBNET_IDS,
            [subnet.ref for subnet in self.public_subnets],
            "Comma separated public subnet IDs, in availability zone order",
        )

        export_ids(
            self,
            PRIVATE_SUBNET_IDS,
            [subnet.ref for subnet in self.private_subnets],
            "Comma separated private subnet IDs, in availability zone order",
        )

        export_ids(
            self,
            PRIVATE_ROUTE_TABLE_IDS,
            [route_table.ref for route_table in self.private_route_tables],
            "Comma separated private route table IDs, in availability zone order",
        )

    def _subnet(self, label: str, az: str, cidr, public: bool) -> ec2.CfnSubnet:
        kind = "Public" if public else "Private"
        return ec2.CfnSubnet(
            self,
            f"{kind}Subnet{label}",
            vpc_id=self.vpc.ref,
            availability_zone=az,
            cidr_block=str(cidr),
            map_public_ip_on_launch=public,
            tags=name_tag(f"{kind} Subnet {label}"),
        )
