"""Shared pipeline helpers for bucketing match-key values."""

from .bucketing import BucketPlan, assign_bucket, normalize_breakpoints, parse_bucket_label

__all__ = [
    "BucketPlan",
    "assign_bucket",
    "normalize_breakpoints",
    "parse_bucket_label",
]
