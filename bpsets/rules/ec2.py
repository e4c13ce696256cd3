"""EC2 instance rules."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

from bpsets.contracts.models import BPSetMetadata, CommandUsage, RequiredParameter
from bpsets.rules.base import AWSBPSet
from bpsets.toolkit.bpset import CheckResult
from bpsets.toolkit.registry import register


async def _instances(bpset: AWSBPSet) -> List[Dict[str, Any]]:
    pages = await bpset.memo_client.paginate("describe_instances")
    return list(_iter_instances(pages))


def _iter_instances(pages: List[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    for page in pages:
        for reservation in page.get("Reservations", []):
            yield from reservation.get("Instances", [])


@register
class EC2Imdsv2Check(AWSBPSet):
    service = "ec2"
    metadata = BPSetMetadata(
        name="EC2Imdsv2Check",
        description="Ensures that EC2 instances require IMDSv2 session tokens for instance metadata.",
        priority=1,
        priority_reason="IMDSv1 is the usual path for SSRF-based credential theft from instances.",
        aws_service="EC2",
        aws_service_category="Compute",
        best_practice_category="Security",
        command_used_in_check_function=[
            CommandUsage(name="DescribeInstances", reason="List instances and their metadata options."),
        ],
        command_used_in_fix_function=[
            CommandUsage(name="ModifyInstanceMetadataOptions", reason="Set HttpTokens to required."),
        ],
        advise_before_fix_function="Software on the instance that still calls IMDSv1 stops receiving metadata.",
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        for instance in await _instances(self):
            if instance.get("MetadataOptions", {}).get("HttpTokens") == "required":
                compliant.append(instance["InstanceId"])
            else:
                non_compliant.append(instance["InstanceId"])
        return compliant, non_compliant

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "modify_instance_metadata_options",
            InstanceId=resource_id,
            HttpTokens="required",
        )


@register
class EC2InstanceProfileAttached(AWSBPSet):
    service = "ec2"
    metadata = BPSetMetadata(
        name="EC2InstanceProfileAttached",
        description="Ensures that all EC2 instances have an IAM instance profile attached.",
        priority=2,
        priority_reason="Attaching an IAM instance profile enables instances to securely interact with AWS services.",
        aws_service="EC2",
        aws_service_category="Compute",
        best_practice_category="Security",
        required_parameters_for_fix=[
            RequiredParameter(
                name="iam-instance-profile",
                description="The name of the IAM instance profile to attach.",
                default="",
                example="EC2InstanceProfile",
            ),
        ],
        command_used_in_check_function=[
            CommandUsage(
                name="DescribeInstances",
                reason="Retrieve all EC2 instances and their associated IAM instance profiles.",
            ),
        ],
        command_used_in_fix_function=[
            CommandUsage(
                name="AssociateIamInstanceProfile",
                reason="Attach an IAM instance profile to non-compliant EC2 instances.",
            ),
        ],
        advise_before_fix_function=(
            "Ensure the specified IAM instance profile exists and aligns with your access control policies."
        ),
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        for instance in await _instances(self):
            if instance.get("IamInstanceProfile"):
                compliant.append(instance["InstanceId"])
            else:
                non_compliant.append(instance["InstanceId"])
        return compliant, non_compliant

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "associate_iam_instance_profile",
            InstanceId=resource_id,
            IamInstanceProfile={"Name": params["iam-instance-profile"]},
        )
