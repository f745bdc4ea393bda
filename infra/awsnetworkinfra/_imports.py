import aws_cdk as cdk

from awsnetwork.exports import (
    ID_SEPARATOR,
    PRIVATE_ROUTE_TABLE_IDS,
    PRIVATE_SUBNET_IDS,
    PUBLIC_SUBNET_IDS,
    VPC_ID,
    export_name,
)


class VpcImports:
    """Tokens resolving to the values exported by a VPC stack."""

    def __init__(self, vpc_stack_name: str):
        self.vpc_stack_name = vpc_stack_name

    def _import(self, key: str) -> str:
        return cdk.Fn.import_value(export_name(self.vpc_stack_name, key))

    def _select(self, key: str, index: int) -> str:
        return cdk.Fn.select(index, cdk.Fn.split(ID_SEPARATOR, self._import(key)))

    @property
    def vpc_id(self) -> str:
        return self._import(VPC_ID)

    def public_subnet_id(self, index: int) -> str:
        return self._select(PUBLIC_SUBNET_IDS, index)

    def private_subnet_id(self, index: int) -> str:
        return self._select(PRIVATE_SUBNET_IDS, index)

    def private_route_table_id(self, index: int) -> str:
        return self._select(PRIVATE_ROUTE_TABLE_IDS, index)


def export_ids(scope: cdk.Stack, key: str, ids: list, description: str) -> cdk.CfnOutput:
    """Export a list of IDs as one comma-joined value named after the stack."""
    return cdk.CfnOutput(
        scope,
        key,
        value=cdk.Fn.join(ID_SEPARATOR, ids),
        description=description,
        export_name=export_name(scope.stack_name, key),
    )
