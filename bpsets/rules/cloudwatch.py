"""CloudWatch Logs rules."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from bpsets.contracts.models import BPSetMetadata, CommandUsage, FixParameterInput, RequiredParameter
from bpsets.errors import InvalidFixParameterError
from bpsets.rules.base import AWSBPSet
from bpsets.toolkit.bpset import CheckResult
from bpsets.toolkit.registry import register

# Values accepted by PutRetentionPolicy
VALID_RETENTION_DAYS = frozenset({
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
})


def log_group_name(arn: str) -> str:
    # arn:aws:logs:<region>:<account>:log-group:<name>[:*]
    name = arn.split(":log-group:", 1)[-1]
    return name.removesuffix(":*")


@register
class CWLogGroupRetentionPeriodCheck(AWSBPSet):
    service = "logs"
    metadata = BPSetMetadata(
        name="CWLogGroupRetentionPeriodCheck",
        description="Ensures that every CloudWatch log group has a retention period configured.",
        priority=3,
        priority_reason="Log groups without retention keep data forever and grow storage cost without bound.",
        aws_service="CloudWatch",
        aws_service_category="Management & Governance",
        best_practice_category="Cost Optimization",
        required_parameters_for_fix=[
            RequiredParameter(
                name="retention-period-days",
                description="Number of days to retain log events.",
                default="365",
                example="90",
            ),
        ],
        command_used_in_check_function=[
            CommandUsage(name="DescribeLogGroups", reason="List log groups and their retention settings."),
        ],
        command_used_in_fix_function=[
            CommandUsage(name="PutRetentionPolicy", reason="Set the retention period on non-compliant log groups."),
        ],
        advise_before_fix_function="Log events older than the new retention period are deleted by CloudWatch.",
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        pages = await self.memo_client.paginate("describe_log_groups")

        for page in pages:
            for group in page.get("logGroups", []):
                arn = group.get("logGroupArn") or group["arn"]
                if group.get("retentionInDays"):
                    compliant.append(arn)
                else:
                    non_compliant.append(arn)
        return compliant, non_compliant

    def validate_parameters(self, required_parameters: Optional[Iterable[FixParameterInput]]) -> Dict[str, str]:
        params = super().validate_parameters(required_parameters)
        days = self.int_parameter(params, "retention-period-days")
        if days not in VALID_RETENTION_DAYS:
            raise InvalidFixParameterError(
                self.name,
                "retention-period-days",
                f"{days} is not a retention period CloudWatch Logs accepts",
            )
        return params

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "put_retention_policy",
            logGroupName=log_group_name(resource_id),
            retentionInDays=int(params["retention-period-days"]),
        )
