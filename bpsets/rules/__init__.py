"""
Built-in rule catalog.

Importing this package registers every rule below in the default
registry, in this order.
"""

from bpsets.rules import ec2, s3, cloudwatch, rds, dynamodb  # noqa: F401
