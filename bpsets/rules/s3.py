"""S3 bucket rules."""

from __future__ import annotations

from typing import Dict, List

from bpsets.contracts.models import BPSetMetadata, CommandUsage
from bpsets.rules.base import AWSBPSet
from bpsets.toolkit.bpset import CheckResult
from bpsets.toolkit.registry import register

BUCKET_ARN_PREFIX = "arn:aws:s3:::"


def bucket_arn(name: str) -> str:
    return f"{BUCKET_ARN_PREFIX}{name}"


def bucket_name(arn: str) -> str:
    return arn[len(BUCKET_ARN_PREFIX):] if arn.startswith(BUCKET_ARN_PREFIX) else arn


@register
class S3BucketVersioningEnabled(AWSBPSet):
    service = "s3"
    metadata = BPSetMetadata(
        name="S3BucketVersioningEnabled",
        description="Ensures that versioning is enabled on every S3 bucket.",
        priority=2,
        priority_reason="Versioning lets overwritten or deleted objects be recovered.",
        aws_service="S3",
        aws_service_category="Storage",
        best_practice_category="Data Protection",
        command_used_in_check_function=[
            CommandUsage(name="ListBuckets", reason="List every bucket in the account."),
            CommandUsage(name="GetBucketVersioning", reason="Read each bucket's versioning status."),
        ],
        command_used_in_fix_function=[
            CommandUsage(name="PutBucketVersioning", reason="Enable versioning on non-compliant buckets."),
        ],
        advise_before_fix_function=(
            "Versioned buckets keep every object version; pair this with a lifecycle policy to bound storage cost."
        ),
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        response = await self.memo_client.send("list_buckets")

        for bucket in response.get("Buckets", []):
            versioning = await self.memo_client.send("get_bucket_versioning", Bucket=bucket["Name"])
            if versioning.get("Status") == "Enabled":
                compliant.append(bucket_arn(bucket["Name"]))
            else:
                non_compliant.append(bucket_arn(bucket["Name"]))
        return compliant, non_compliant

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "put_bucket_versioning",
            Bucket=bucket_name(resource_id),
            VersioningConfiguration={"Status": "Enabled"},
        )
