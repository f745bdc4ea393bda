"""Names and formats of the values the VPC stack exports to other stacks.

List values (subnet IDs, route table IDs) travel as a single comma-joined
string; consumers pick one element by index.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

VPC_ID = "VpcId"
PUBLIC_SUBNET_IDS = "PublicSubnetIds"
PRIVATE_SUBNET_IDS = "PrivateSubnetIds"
PRIVATE_ROUTE_TABLE_IDS = "PrivateRouteTableIds"

EXPORT_KEYS = (VPC_ID, PUBLIC_SUBNET_IDS, PRIVATE_SUBNET_IDS, PRIVATE_ROUTE_TABLE_IDS)

ID_SEPARATOR = ","


def export_name(stack_name: str, key: str) -> str:
    return f"{stack_name}-{key}"


def ec2_stack_name_for(vpc_stack_name: str) -> str:
    """Derive the EC2 stack name from the VPC stack name it imports from."""
    if "VPC" not in vpc_stack_name:
        raise ValueError(
            f"Cannot derive an EC2 stack name from '{vpc_stack_name}': it does not"
            " contain 'VPC'. Set the EC2 stack name explicitly."
        )
    return vpc_stack_name.replace("VPC", "EC2")


def split_ids(value: str) -> List[str]:
    return [part.strip() for part in value.split(ID_SEPARATOR) if part.strip()]


class VpcExports(BaseModel, frozen=True):
    """The values a deployed VPC stack exports, as read back from its outputs."""

    vpc_id: str
    public_subnet_ids: Tuple[str, ...]
    private_subnet_ids: Tuple[str, ...] = ()
    private_route_table_ids: Tuple[str, ...] = ()

    @classmethod
    def from_outputs(cls, outputs: Dict[str, Optional[str]]) -> "VpcExports":
        """Build from a mapping of output key to output value."""
        if outputs.get(VPC_ID) is None:
            raise KeyError(VPC_ID)
        if outputs.get(PUBLIC_SUBNET_IDS) is None:
            raise KeyError(PUBLIC_SUBNET_IDS)

        return cls(
            vpc_id=outputs[VPC_ID],
            public_subnet_ids=tuple(split_ids(outputs[PUBLIC_SUBNET_IDS])),
            private_subnet_ids=tuple(split_ids(outputs.get(PRIVATE_SUBNET_IDS) or "")),
            private_route_table_ids=tuple(
                split_ids(outputs.get(PRIVATE_ROUTE_TABLE_IDS) or "")
            ),
        )
