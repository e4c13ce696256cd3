"""RDS cluster rules."""

from __future__ import annotations

from typing import Dict, List

from bpsets.contracts.models import BPSetMetadata, CommandUsage
from bpsets.rules.base import AWSBPSet
from bpsets.toolkit.bpset import CheckResult
from bpsets.toolkit.registry import register


def cluster_identifier(arn: str) -> str:
    # arn:aws:rds:<region>:<account>:cluster:<identifier>
    return arn.split(":cluster:", 1)[-1]


@register
class RDSClusterDeletionProtectionEnabled(AWSBPSet):
    service = "rds"
    metadata = BPSetMetadata(
        name="RDSClusterDeletionProtectionEnabled",
        description="Ensures that RDS clusters have deletion protection enabled.",
        priority=2,
        priority_reason="Deletion protection helps to prevent accidental deletion of critical database clusters.",
        aws_service="RDS",
        aws_service_category="Database",
        best_practice_category="Resilience",
        command_used_in_check_function=[
            CommandUsage(
                name="DescribeDBClusters",
                reason="To fetch details about RDS clusters, including their deletion protection status.",
            ),
        ],
        command_used_in_fix_function=[
            CommandUsage(
                name="ModifyDBCluster",
                reason="To enable deletion protection on non-compliant RDS clusters.",
            ),
        ],
        advise_before_fix_function="Ensure that enabling deletion protection aligns with your operational policies.",
    )

    async def check_impl(self) -> CheckResult:
        compliant: List[str] = []
        non_compliant: List[str] = []
        pages = await self.memo_client.paginate("describe_db_clusters")

        for page in pages:
            for cluster in page.get("DBClusters", []):
                if cluster.get("DeletionProtection"):
                    compliant.append(cluster["DBClusterArn"])
                else:
                    non_compliant.append(cluster["DBClusterArn"])
        return compliant, non_compliant

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        await self.call(
            "modify_db_cluster",
            DBClusterIdentifier=cluster_identifier(resource_id),
            DeletionProtection=True,
            ApplyImmediately=True,
        )
