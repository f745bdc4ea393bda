from logging import getLogger
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel
from rich import box
from rich.table import Table
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .exports import VpcExports

logger = getLogger(__name__)

FAILED_STATUSES = frozenset(
    [
        "CREATE_FAILED",
        "ROLLBACK_COMPLETE",
        "ROLLBACK_FAILED",
        "DELETE_COMPLETE",
        "DELETE_FAILED",
        "UPDATE_ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
        "IMPORT_ROLLBACK_COMPLETE",
        "IMPORT_ROLLBACK_FAILED",
    ]
)


class StackOutput(BaseModel, frozen=True):
    key: str
    value: str
    description: Optional[str] = None
    export_name: Optional[str] = None


class StackNotFoundError(KeyError):
    """The named stack does not exist in the region."""


class _StackInProgress(Exception):
    pass


def _describe_stack(cfn, stack_name: str) -> dict:
    try:
        response = cfn.describe_stacks(StackName=stack_name)
    except ClientError as e:
        error = e.response.get("Error", {}) if e.response else {}
        if error.get("Code") == "ValidationError" and "does not exist" in error.get(
            "Message", ""
        ):
            raise StackNotFoundError(stack_name)
        raise
    return response["Stacks"][0]


def _check_status(stack: dict) -> None:
    status = stack["StackStatus"]
    if status in FAILED_STATUSES:
        raise RuntimeError(
            f"Stack {stack['StackName']} is in state {status}:"
            f" {stack.get('StackStatusReason', 'no reason given')}"
        )
    if status.endswith("_IN_PROGRESS"):
        raise _StackInProgress(f"Stack {stack['StackName']} is {status}")


@retry(
    stop=stop_after_attempt(40),
    wait=wait_fixed(15),
    retry=retry_if_exception_type(_StackInProgress),
    reraise=True,
)
def _wait_for_stack(cfn, stack_name: str) -> dict:
    stack = _describe_stack(cfn, stack_name)
    logger.debug(f"Stack {stack_name} status: {stack['StackStatus']}")
    _check_status(stack)
    return stack


def read_stack_outputs(
    stack_name: str, region: str, wait: bool = False
) -> List[StackOutput]:
    """Read the outputs of a deployed stack.

    With ``wait`` set, a stack that is still being created or updated is polled
    until it settles; otherwise an in-progress stack is an error.
    """
    cfn = boto3.client("cloudformation", region_name=region)

    if wait:
        stack = _wait_for_stack(cfn, stack_name)
    else:
        stack = _describe_stack(cfn, stack_name)
        try:
            _check_status(stack)
        except _StackInProgress as e:
            raise RuntimeError(f"{e}; retry with waiting enabled.")

    outputs = [
        StackOutput(
            key=output["OutputKey"],
            value=output["OutputValue"],
            description=output.get("Description"),
            export_name=output.get("ExportName"),
        )
        for output in stack.get("Outputs", [])
    ]
    logger.debug(f"Read {len(outputs)} outputs from stack {stack_name}")
    return outputs


def outputs_by_key(outputs: List[StackOutput]) -> Dict[str, str]:
    return {output.key: output.value for output in outputs}


def read_vpc_exports(vpc_stack_name: str, region: str) -> VpcExports:
    return VpcExports.from_outputs(
        outputs_by_key(read_stack_outputs(vpc_stack_name, region))
    )


def outputs_table(stack_name: str, outputs: List[StackOutput]) -> Table:
    table = Table(
        box=box.SQUARE,
        show_lines=False,
        title=stack_name,
        title_style="bold",
        title_justify="left",
    )
    table.add_column("Output")
    table.add_column("Value")
    table.add_column("Export")
    table.add_column("Description")
    for output in outputs:
        table.add_row(
            output.key,
            output.value,
            output.export_name or "",
            output.description or "",
        )
    return table
