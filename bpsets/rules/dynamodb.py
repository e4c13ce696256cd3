"""DynamoDB table rules."""

from __future__ import annotations

from typing import Dict, List

from bpsets.contracts.models import BPSetMetadata, CommandUsage
from bpsets.rules.base import AWSBPSet
from bpsets.toolkit.bpset import CheckResult
from bpsets.toolkit.registry import register


def table_name(arn: str) -> str:
    # arn:aws:dynamodb:<region>:<account>:table/<name>
    return arn.split(":table/", 1)[-1]


@register
class DynamoDBPITREnabled(AWSBPSet):
    service = "dynamodb"
    metadata = BPSetMetadata(
        name="DynamoDBPITREnabled",
        description="Ensures that point-in-time recovery is enabled on every DynamoDB table.",
        priority=1,
        priority_reason="Without PITR a bad write or delete cannot be rolled back.",
        aws_service="DynamoDB",
        aws_service_category="Database",
        best_practice_category="Resilience",
        command_used_in_check_function=[
            CommandUsage(name="ListTables", reason="List every table in the region."),
            CommandUsage(name="DescribeTable", reason="Resolve each table's ARN."),
            CommandUsage(name="DescribeContinuousBackups", reason="Read each table's PITR status."),
        ],
        command_used_in_fix_function=[
            CommandUsage(name="UpdateContinuousBackups", reason="Enable PITR on non-compliant tables."),
        ],
        advise_before_fix_function="PITR is billed per GB of table data; review the cost for large tables.",
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        pages = await self.memo_client.paginate("list_tables")

        for page in pages:
            for name in page.get("TableNames", []):
                table = await self.memo_client.send("describe_table", TableName=name)
                backups = await self.memo_client.send("describe_continuous_backups", TableName=name)
                status = (
                    backups.get("ContinuousBackupsDescription", {})
                    .get("PointInTimeRecoveryDescription", {})
                    .get("PointInTimeRecoveryStatus")
                )
                arn = table["Table"]["TableArn"]
                if status == "ENABLED":
                    compliant.append(arn)
                else:
                    non_compliant.append(arn)
        return compliant, non_compliant

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "update_continuous_backups",
            TableName=table_name(resource_id),
            PointInTimeRecoverySpecification={"PointInTimeRecoveryEnabled": True},
        )
