"""
Schema definitions for the network stacks.

This module provides the settings loader and the frozen configuration object
shared by the CDK stacks and the command line tools.
"""

import os
from enum import Enum
from ipaddress import IPv4Network
from itertools import combinations
from typing import Optional, Tuple

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._tags import unpack_tags
from .exports import ec2_stack_name_for, split_ids

env_prefix = "AWS_NETWORK_"

DEFAULT_REGION = "us-east-1"


class VpcVariant(str, Enum):
    """How the VPC stack declares its resources."""

    MANUAL = "manual"  # L1 Cfn* resources, public and private subnets
    MANAGED = "managed"  # L2 ec2.Vpc, public subnets only


class Ec2Variant(str, Enum):
    """Which fixed set of instances and gateways the EC2 stack declares."""

    INSTANCE = "instance"
    BASTION_NAT_INSTANCE = "bastion-nat-instance"
    BASTION_NAT_GATEWAY = "bastion-nat-gateway"

    @property
    def needs_private_subnets(self) -> bool:
        return self is not Ec2Variant.INSTANCE


class _NetworkSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", env_prefix=env_prefix
    )
    account: Optional[str] = None
    region: Optional[str] = None
    vpc_stack_name: Optional[str] = None
    ec2_stack_name: Optional[str] = None
    vpc_variant: Optional[str] = None
    ec2_variant: Optional[str] = None
    vpc_cidr: Optional[str] = None
    availability_zone_suffixes: Optional[str] = None  # in the format "a,b"
    public_subnet_cidrs: Optional[str] = None  # comma separated
    private_subnet_cidrs: Optional[str] = None  # comma separated
    ssh_cidr: Optional[str] = None
    nat_ami_id: Optional[str] = None
    instance_type: Optional[str] = None
    key_name: Optional[str] = None
    extra_tags_str: Optional[str] = None  # in the format "key1=value1;key2=value2"


class NetworkConfig(BaseModel, frozen=True):
    """
    Configuration for the VPC and EC2 stacks.

    Attributes:
        account: AWS account (optional, the stacks are account-agnostic otherwise)
        region: AWS region
        vpc_stack_name: CloudFormation name of the VPC stack, also the prefix
            of every value it exports
        ec2_stack_name: CloudFormation name of the EC2 stack
        vpc_variant: L1 (manual) or L2 (managed) VPC declaration
        ec2_variant: set of instances and gateways in the EC2 stack
        vpc_cidr: VPC address range
        availability_zone_suffixes: AZ letters, one public and one private
            subnet is declared per AZ
        public_subnet_cidrs: one range per AZ, in AZ order
        private_subnet_cidrs: one range per AZ, in AZ order
        ssh_cidr: range allowed to SSH into the bastion and NAT instances
        nat_ami_id: AMI used for the NAT instance
        instance_type: EC2 instance type for every instance
        key_name: name of the key pair created by the EC2 stack
        extra_tags: tuple of 2-tuples of additional tags
    """

    account: Optional[str]
    region: str
    vpc_stack_name: str
    ec2_stack_name: str
    vpc_variant: VpcVariant
    ec2_variant: Ec2Variant
    vpc_cidr: IPv4Network
    availability_zone_suffixes: Tuple[str, ...]
    public_subnet_cidrs: Tuple[IPv4Network, ...]
    private_subnet_cidrs: Tuple[IPv4Network, ...]
    ssh_cidr: IPv4Network
    nat_ami_id: str
    instance_type: str
    key_name: str
    extra_tags: Tuple[Tuple[str, str], ...]

    @property
    def availability_zones(self) -> Tuple[str, ...]:
        return tuple(f"{self.region}{suffix}" for suffix in self.availability_zone_suffixes)

    @property
    def az_labels(self) -> Tuple[str, ...]:
        """Upper-cased AZ suffixes, used in logical IDs and Name tags."""
        return tuple(suffix.upper() for suffix in self.availability_zone_suffixes)

    @classmethod
    def from_settings(cls, **kwargs):
        """Create an instance from environment settings with optional overrides."""
        settings = _NetworkSettings()

        params = {
            "account": settings.account,
            "region": settings.region,
            "vpc_stack_name": settings.vpc_stack_name,
            "ec2_stack_name": settings.ec2_stack_name,
            "vpc_variant": settings.vpc_variant,
            "ec2_variant": settings.ec2_variant,
            "vpc_cidr": settings.vpc_cidr,
            "availability_zone_suffixes": _split_or_none(
                settings.availability_zone_suffixes
            ),
            "public_subnet_cidrs": _split_or_none(settings.public_subnet_cidrs),
            "private_subnet_cidrs": _split_or_none(settings.private_subnet_cidrs),
            "ssh_cidr": settings.ssh_cidr,
            "nat_ami_id": settings.nat_ami_id,
            "instance_type": settings.instance_type,
            "key_name": settings.key_name,
            "extra_tags": unpack_tags(settings.extra_tags_str),
        }

        # Override with any provided kwargs
        params.update(kwargs)

        if params["account"] is None:
            params["account"] = os.getenv("CDK_DEFAULT_ACCOUNT")

        if params["region"] is None:
            params["region"] = (
                os.getenv("CDK_DEFAULT_REGION")
                or os.getenv("AWS_REGION")
                or DEFAULT_REGION
            )

        if params["vpc_stack_name"] is None:
            params["vpc_stack_name"] = "MyVPCStack"

        if params["ec2_stack_name"] is None:
            params["ec2_stack_name"] = ec2_stack_name_for(params["vpc_stack_name"])

        if params["ec2_stack_name"] == params["vpc_stack_name"]:
            raise ValueError(
                f"EC2 stack name '{params['ec2_stack_name']}' must differ"
                " from the VPC stack name."
            )

        if params["vpc_variant"] is None:
            params["vpc_variant"] = VpcVariant.MANUAL

        if params["ec2_variant"] is None:
            params["ec2_variant"] = Ec2Variant.BASTION_NAT_INSTANCE

        if params["vpc_cidr"] is None:
            params["vpc_cidr"] = "10.0.0.0/16"

        if params["availability_zone_suffixes"] is None:
            params["availability_zone_suffixes"] = ("a", "b")

        if params["public_subnet_cidrs"] is None:
            params["public_subnet_cidrs"] = ("10.0.1.0/24", "10.0.2.0/24")

        if params["private_subnet_cidrs"] is None:
            params["private_subnet_cidrs"] = ("10.0.3.0/24", "10.0.4.0/24")

        if params["ssh_cidr"] is None:
            params["ssh_cidr"] = "0.0.0.0/0"

        if params["nat_ami_id"] is None:
            # Amazon Linux 2 AMI (HVM) - Kernel 5.10, SSD Volume Type, us-east-1
            params["nat_ami_id"] = "ami-0c02fb55956c7d316"

        if params["instance_type"] is None:
            params["instance_type"] = "t2.micro"

        if params["key_name"] is None:
            params["key_name"] = "demo-key-pair"

        config = cls(**params)
        config._check_subnets()
        config._check_variants()
        return config

    def _check_subnets(self) -> None:
        az_count = len(self.availability_zone_suffixes)
        if az_count == 0:
            raise ValueError("At least one availability zone suffix is required.")

        # Labels name the subnet and route table constructs, so must be unique
        if len(set(self.az_labels)) != az_count:
            raise ValueError(
                "Availability zone suffixes must be unique (case-insensitive),"
                f" but got {', '.join(self.availability_zone_suffixes)}."
            )

        for kind, cidrs in (
            ("public", self.public_subnet_cidrs),
            ("private", self.private_subnet_cidrs),
        ):
            if len(cidrs) != az_count:
                raise ValueError(
                    f"Expected {az_count} {kind} subnet CIDRs, one per availability"
                    f" zone, but got {len(cidrs)}."
                )

        all_cidrs = self.public_subnet_cidrs + self.private_subnet_cidrs
        for cidr in all_cidrs:
            if not cidr.subnet_of(self.vpc_cidr):
                raise ValueError(
                    f"Subnet CIDR {cidr} is outside the VPC CIDR {self.vpc_cidr}."
                )

        for first, second in combinations(all_cidrs, 2):
            if first.overlaps(second):
                raise ValueError(f"Subnet CIDRs {first} and {second} overlap.")

    def _check_variants(self) -> None:
        if self.vpc_variant is VpcVariant.MANAGED and self.ec2_variant.needs_private_subnets:
            raise ValueError(
                f"EC2 variant '{self.ec2_variant.value}' needs private subnets, which"
                f" the '{self.vpc_variant.value}' VPC variant does not declare."
            )
        # The NAT instance serves the first AZ, the NAT gateway the others
        if (
            self.ec2_variant is Ec2Variant.BASTION_NAT_GATEWAY
            and len(self.availability_zone_suffixes) < 2
        ):
            raise ValueError(
                f"EC2 variant '{self.ec2_variant.value}' needs at least two"
                " availability zones."
            )


def _split_or_none(value: Optional[str]) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    return tuple(split_ids(value))
