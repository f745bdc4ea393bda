from .ec2_stack import Ec2Stack
from .managed_vpc_stack import ManagedVpcStack
from .topology import create_stacks
from .vpc_stack import VpcStack

__all__ = ["Ec2Stack", "ManagedVpcStack", "VpcStack", "create_stacks"]
