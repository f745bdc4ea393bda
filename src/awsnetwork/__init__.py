from .exports import VpcExports, export_name
from .schema import Ec2Variant, NetworkConfig, VpcVariant

__all__ = [
    "Ec2Variant",
    "NetworkConfig",
    "VpcExports",
    "VpcVariant",
    "export_name",
]
