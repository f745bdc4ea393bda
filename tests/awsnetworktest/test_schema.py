from ipaddress import IPv4Network

import pytest

from awsnetwork.schema import Ec2Variant, NetworkConfig, VpcVariant

from .helpers import network_env


def env_vars_all() -> dict[str, str]:
    return {
        "AWS_NETWORK_ACCOUNT": "123456789012",
        "AWS_NETWORK_REGION": "eu-west-2",
        "AWS_NETWORK_VPC_STACK_NAME": "DevVPCStack",
        "AWS_NETWORK_VPC_VARIANT": "manual",
        "AWS_NETWORK_EC2_VARIANT": "bastion-nat-gateway",
        "AWS_NETWORK_VPC_CIDR": "172.16.0.0/16",
        "AWS_NETWORK_AVAILABILITY_ZONE_SUFFIXES": "a, b, c",
        "AWS_NETWORK_PUBLIC_SUBNET_CIDRS": "172.16.0.0/24,172.16.1.0/24,172.16.2.0/24",
        "AWS_NETWORK_PRIVATE_SUBNET_CIDRS": "172.16.10.0/24,172.16.11.0/24,172.16.12.0/24",
        "AWS_NETWORK_SSH_CIDR": "203.0.113.0/24",
        "AWS_NETWORK_NAT_AMI_ID": "ami-789",
        "AWS_NETWORK_INSTANCE_TYPE": "t3.small",
        "AWS_NETWORK_KEY_NAME": "dev-key",
        "AWS_NETWORK_EXTRA_TAGS_STR": "team=network;env=dev",
    }


@pytest.fixture()
def mock_settings_env_vars_all():
    with network_env(**env_vars_all()):
        yield 0


@pytest.fixture()
def mock_settings_env_vars_none():
    with network_env():
        yield 0


def test_env_vars(mock_settings_env_vars_all):
    assert mock_settings_env_vars_all is not None
    config = NetworkConfig.from_settings()
    assert config.account == "123456789012"
    assert config.region == "eu-west-2"
    assert config.vpc_stack_name == "DevVPCStack"
    assert config.ec2_stack_name == "DevEC2Stack"
    assert config.ec2_variant is Ec2Variant.BASTION_NAT_GATEWAY
    assert config.vpc_cidr == IPv4Network("172.16.0.0/16")
    assert config.availability_zones == ("eu-west-2a", "eu-west-2b", "eu-west-2c")
    assert config.az_labels == ("A", "B", "C")
    assert config.private_subnet_cidrs[2] == IPv4Network("172.16.12.0/24")
    assert config.ssh_cidr == IPv4Network("203.0.113.0/24")
    assert config.nat_ami_id == "ami-789"
    assert config.instance_type == "t3.small"
    assert config.key_name == "dev-key"
    assert config.extra_tags == (("team", "network"), ("env", "dev"))


def test_defaults(mock_settings_env_vars_none):
    config = NetworkConfig.from_settings()
    assert config.account is None
    assert config.region == "us-east-1"
    assert config.vpc_stack_name == "MyVPCStack"
    assert config.ec2_stack_name == "MyEC2Stack"
    assert config.vpc_variant is VpcVariant.MANUAL
    assert config.ec2_variant is Ec2Variant.BASTION_NAT_INSTANCE
    assert config.availability_zones == ("us-east-1a", "us-east-1b")
    assert config.public_subnet_cidrs == (
        IPv4Network("10.0.1.0/24"),
        IPv4Network("10.0.2.0/24"),
    )
    assert config.private_subnet_cidrs == (
        IPv4Network("10.0.3.0/24"),
        IPv4Network("10.0.4.0/24"),
    )
    assert config.nat_ami_id == "ami-0c02fb55956c7d316"
    assert config.instance_type == "t2.micro"
    assert config.key_name == "demo-key-pair"
    assert config.extra_tags == ()


def test_cdk_defaults_fill_account_and_region():
    with network_env(CDK_DEFAULT_ACCOUNT="210987654321", CDK_DEFAULT_REGION="eu-west-1"):
        config = NetworkConfig.from_settings()
    assert config.account == "210987654321"
    assert config.region == "eu-west-1"


def test_kwargs_override_env(mock_settings_env_vars_all):
    config = NetworkConfig.from_settings(region="us-west-2", ec2_variant="instance")
    assert config.region == "us-west-2"
    assert config.ec2_variant is Ec2Variant.INSTANCE


def test_config_is_frozen(mock_settings_env_vars_none):
    config = NetworkConfig.from_settings()
    with pytest.raises(ValueError):
        config.region = "eu-west-2"


def test_stack_name_without_vpc_needs_explicit_ec2_name(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="does not contain 'VPC'"):
        NetworkConfig.from_settings(vpc_stack_name="MyVpcStack")

    config = NetworkConfig.from_settings(
        vpc_stack_name="MyVpcStack", ec2_stack_name="MyInstancesStack"
    )
    assert config.ec2_stack_name == "MyInstancesStack"


def test_same_stack_names_rejected(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="must differ"):
        NetworkConfig.from_settings(
            vpc_stack_name="NetworkVPC", ec2_stack_name="NetworkVPC"
        )


def test_subnet_count_must_match_azs(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="Expected 3 public subnet CIDRs"):
        NetworkConfig.from_settings(availability_zone_suffixes=("a", "b", "c"))


@pytest.mark.parametrize("suffixes", [("a", "a"), ("a", "A")])
def test_duplicate_az_suffixes_rejected(mock_settings_env_vars_none, suffixes):
    with pytest.raises(ValueError, match="must be unique"):
        NetworkConfig.from_settings(availability_zone_suffixes=suffixes)


def test_subnet_outside_vpc_rejected(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="outside the VPC CIDR"):
        NetworkConfig.from_settings(
            public_subnet_cidrs=("10.0.1.0/24", "10.1.2.0/24"),
        )


def test_overlapping_subnets_rejected(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="overlap"):
        NetworkConfig.from_settings(
            private_subnet_cidrs=("10.0.3.0/24", "10.0.0.0/22"),
        )


def test_invalid_cidr_rejected(mock_settings_env_vars_none):
    with pytest.raises(ValueError):
        NetworkConfig.from_settings(vpc_cidr="10.0.0.0/33")


def test_managed_vpc_only_supports_plain_instance(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="needs private subnets"):
        NetworkConfig.from_settings(vpc_variant="managed")

    config = NetworkConfig.from_settings(vpc_variant="managed", ec2_variant="instance")
    assert config.vpc_variant is VpcVariant.MANAGED


def test_nat_gateway_needs_two_azs(mock_settings_env_vars_none):
    with pytest.raises(ValueError, match="at least two"):
        NetworkConfig.from_settings(
            ec2_variant="bastion-nat-gateway",
            availability_zone_suffixes=("a",),
            public_subnet_cidrs=("10.0.1.0/24",),
            private_subnet_cidrs=("10.0.3.0/24",),
        )


def test_unknown_variant_rejected(mock_settings_env_vars_none):
    with pytest.raises(ValueError):
        NetworkConfig.from_settings(ec2_variant="nat-only")
