"""Module for defining the EC2 instances and gateways placed in the VPC.

The VPC is not referenced directly: its ID, subnet IDs and private route table
IDs are imported from the values the VPC stack exports, so the two stacks can
be deployed and updated independently.

Three fixed layouts are supported:

- ``instance``: a single instance in the first public subnet.
- ``bastion-nat-instance``: a bastion host and a NAT instance in the first
  public subnet, a private instance in the first private subnet, and a default
  route from every private route table to the NAT instance.
- ``bastion-nat-gateway``: as above, but only the first availability zone
  routes through the NAT instance; the others use a NAT gateway placed in the
  last public subnet.
"""

from logging import getLogger

import aws_cdk as cdk
import aws_cdk.aws_ec2 as ec2
from constructs import Construct

from awsnetwork.schema import Ec2Variant, NetworkConfig

from ._imports import VpcImports
from .vpc_stack import ANY_IPV4, name_tag

logger = getLogger(__name__)


class Ec2Stack(cdk.Stack):
    """CDK Stack for the instances and gateways of one EC2 layout.

    Depends on a previously deployed VPC stack exporting
    ``{StackName}-VpcId``, ``{StackName}-PublicSubnetIds`` and, for the
    bastion variants, ``{StackName}-PrivateSubnetIds`` and
    ``{StackName}-PrivateRouteTableIds``.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        config: NetworkConfig,
        **kwargs,
    ) -> None:
        """Initialize the EC2 stack.

        Args:
            scope: The parent construct.
            id: The construct ID.
            config: Network configuration; selects the layout and names the
                VPC stack to import from.
            **kwargs: Additional keyword arguments passed to the parent Stack.
        """
        super().__init__(scope, id, **kwargs)

        self.config = config
        self.imports = VpcImports(config.vpc_stack_name)

        self.key_pair = ec2.CfnKeyPair(self, "DemoKeyPair", key_name=config.key_name)

        # Latest Amazon Linux 2, resolved from SSM at deploy time
        self.image_id = (
            ec2.MachineImage.latest_amazon_linux2(
                cpu_type=ec2.AmazonLinuxCpuType.X86_64
            )
            .get_image(self)
            .image_id
        )

        if config.ec2_variant is Ec2Variant.INSTANCE:
            self._create_single_instance()
        else:
            self._create_bastion_and_nat_instance()
            if config.ec2_variant is Ec2Variant.BASTION_NAT_GATEWAY:
                self._create_nat_gateway()

        logger.debug(
            f"Declared EC2 variant {config.ec2_variant.value} in {self.stack_name},"
            f" importing from {config.vpc_stack_name}"
        )

    def _create_single_instance(self) -> None:
        self.instance_security_group = self._security_group(
            "InstanceSecurityGroup",
            group_name="InstanceSecurityGroup",
            description="Security group for the EC2 instance",
            ingress=[self._ssh_from_cidr(str(self.config.ssh_cidr))],
        )

        self.instance = self._instance(
            "EC2Instance",
            image_id=self.image_id,
            subnet_id=self.imports.public_subnet_id(0),
            security_group=self.instance_security_group,
            public=True,
        )

        cdk.CfnOutput(
            self,
            "InstanceId",
            value=self.instance.ref,
            description="ID of the EC2 instance",
        )

        cdk.CfnOutput(
            self,
            "InstancePublicIP",
            value=self.instance.attr_public_ip,
            description="Public IP address of the EC2 instance",
        )

    def _create_bastion_and_nat_instance(self) -> None:
        vpc_cidr = str(self.config.vpc_cidr)
        ssh_cidr = str(self.config.ssh_cidr)

        self.bastion_security_group = self._security_group(
            "BastionSecurityGroup",
            group_name="BastionSecurityGroup",
            description="Security group for Bastion host",
            ingress=[self._ssh_from_cidr(ssh_cidr)],
        )

        # SSH only through the bastion
        self.private_instance_security_group = self._security_group(
            "PrivateInstanceSecurityGroup",
            group_name="PrivateInstanceSecurityGroup",
            description="Security group for private EC2 instance",
            ingress=[
                ec2.CfnSecurityGroup.IngressProperty(
                    ip_protocol="tcp",
                    from_port=22,
                    to_port=22,
                    source_security_group_id=self.bastion_security_group.attr_group_id,
                )
            ],
        )

        self.nat_instance_security_group = self._security_group(
            "NatInstanceSecurityGroup",
            group_name="NatInstanceSG",
            description="Security group for NAT instance",
            ingress=[
                ec2.CfnSecurityGroup.IngressProperty(
                    ip_protocol="tcp", from_port=80, to_port=80, cidr_ip=vpc_cidr
                ),
                ec2.CfnSecurityGroup.IngressProperty(
                    ip_protocol="tcp", from_port=443, to_port=443, cidr_ip=vpc_cidr
                ),
                ec2.CfnSecurityGroup.IngressProperty(
                    ip_protocol="icmp", from_port=-1, to_port=-1, cidr_ip=vpc_cidr
                ),
                self._ssh_from_cidr(ssh_cidr),
            ],
        )

        self.nat_instance = self._instance(
            "NatInstance",
            image_id=self.config.nat_ami_id,
            subnet_id=self.imports.public_subnet_id(0),
            security_group=self.nat_instance_security_group,
            public=True,
            source_dest_check=False,
            user_data=cdk.Fn.base64(_nat_user_data(vpc_cidr).render()),
        )

        self.bastion_instance = self._instance(
            "BastionHost",
            image_id=self.image_id,
            subnet_id=self.imports.public_subnet_id(0),
            security_group=self.bastion_security_group,
            public=True,
        )

        self.private_instance = self._instance(
            "PrivateEC2Instance",
            image_id=self.image_id,
            subnet_id=self.imports.private_subnet_id(0),
            security_group=self.private_instance_security_group,
            public=False,
        )

        # The NAT gateway variant takes over every AZ but the first
        nat_instance_azs = self.config.az_labels
        if self.config.ec2_variant is Ec2Variant.BASTION_NAT_GATEWAY:
            nat_instance_azs = nat_instance_azs[:1]

        for index, label in enumerate(nat_instance_azs):
            ec2.CfnRoute(
                self,
                f"PrivateSubnetNatRoute{label}",
                route_table_id=self.imports.private_route_table_id(index),
                destination_cidr_block=ANY_IPV4,
                instance_id=self.nat_instance.ref,
            )

        cdk.CfnOutput(
            self,
            "BastionPublicIP",
            value=self.bastion_instance.attr_public_ip,
            description="Public IP address of the Bastion host",
        )

        cdk.CfnOutput(
            self,
            "PrivateInstancePrivateIP",
            value=self.private_instance.attr_private_ip,
            description="Private IP address of the private EC2 instance",
        )

        cdk.CfnOutput(
            self,
            "NatInstancePublicIP",
            value=self.nat_instance.attr_public_ip,
            description="Public IP address of the NAT instance",
        )

        cdk.CfnOutput(
            self,
            "NatInstanceId",
            value=self.nat_instance.ref,
            description="ID of the NAT instance",
        )

    def _create_nat_gateway(self) -> None:
        last = len(self.config.az_labels) - 1

        self.nat_gateway_eip = ec2.CfnEIP(
            self, "NatGatewayEIP", domain="vpc", tags=name_tag("NatGatewayEIP")
        )

        self.nat_gateway = ec2.CfnNatGateway(
            self,
            "NatGateway",
            subnet_id=self.imports.public_subnet_id(last),
            allocation_id=self.nat_gateway_eip.attr_allocation_id,
            tags=name_tag("NatGateway"),
        )

        for index, label in enumerate(self.config.az_labels):
            if index == 0:
                continue
            ec2.CfnRoute(
                self,
                f"PrivateSubnetNatGatewayRoute{label}",
                route_table_id=self.imports.private_route_table_id(index),
                destination_cidr_block=ANY_IPV4,
                nat_gateway_id=self.nat_gateway.ref,
            )

        cdk.CfnOutput(
            self,
            "NatGatewayId",
            value=self.nat_gateway.ref,
            description="ID of the NAT gateway",
        )

        cdk.CfnOutput(
            self,
            "NatGatewayPublicIP",
            value=self.nat_gateway_eip.attr_public_ip,
            description="Elastic IP address of the NAT gateway",
        )

    def _security_group(
        self, id: str, group_name: str, description: str, ingress: list
    ) -> ec2.CfnSecurityGroup:
        return ec2.CfnSecurityGroup(
            self,
            id,
            group_name=group_name,
            group_description=description,
            vpc_id=self.imports.vpc_id,
            security_group_ingress=ingress,
        )

    @staticmethod
    def _ssh_from_cidr(cidr: str) -> ec2.CfnSecurityGroup.IngressProperty:
        return ec2.CfnSecurityGroup.IngressProperty(
            ip_protocol="tcp", from_port=22, to_port=22, cidr_ip=cidr
        )

    def _instance(
        self,
        id: str,
        image_id: str,
        subnet_id: str,
        security_group: ec2.CfnSecurityGroup,
        public: bool,
        **kwargs,
    ) -> ec2.CfnInstance:
        return ec2.CfnInstance(
            self,
            id,
            image_id=image_id,
            instance_type=self.config.instance_type,
            key_name=self.key_pair.ref,
            network_interfaces=[
                ec2.CfnInstance.NetworkInterfaceProperty(
                    device_index="0",
                    associate_public_ip_address=public,
                    delete_on_termination=True,
                    subnet_id=subnet_id,
                    group_set=[security_group.attr_group_id],
                )
            ],
            tags=name_tag(id),
            **kwargs,
        )


def _nat_user_data(vpc_cidr: str) -> ec2.UserData:
    """Turn a stock Amazon Linux 2 instance into a NAT for the VPC range."""
    user_data = ec2.UserData.for_linux()
    user_data.add_commands(
        "sysctl -w net.ipv4.ip_forward=1",
        "echo 'net.ipv4.ip_forward = 1' > /etc/sysctl.d/90-nat.conf",
        "yum install -y iptables-services",
        "systemctl enable --now iptables",
        "iptables -F FORWARD",
        f"iptables -t nat -A POSTROUTING -o eth0 -s {vpc_cidr} -j MASQUERADE",
        "service iptables save",
    )
    return user_data
