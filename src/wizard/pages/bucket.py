"""
Create Bucket wizard

Collects:
- General configuration: bucket name, region, object ownership
- Block Public Access settings
- Versioning and default encryption (KMS key only for KMS encryption types)
- Tags (optional)
"""

import ipaddress
from typing import Any, Dict, Mapping

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, Option, static_options
from ..validation import (
    InOptions,
    Items,
    Length,
    NotPattern,
    Pattern,
    Predicate,
    Required,
    When,
)
from .inventory import EXISTING_BUCKETS, KMS_KEYS, region_options

OWNERSHIP_CHOICES = [
    ("bucket-owner-enforced", "ACLs disabled (recommended)"),
    ("bucket-owner-preferred", "ACLs enabled, bucket owner preferred"),
    ("object-writer", "ACLs enabled, object writer"),
]

ENCRYPTION_CHOICES = [
    ("sse-s3", "Server-side encryption with Amazon S3 managed keys (SSE-S3)"),
    ("sse-kms", "Server-side encryption with AWS KMS keys (SSE-KMS)"),
    ("dsse-kms", "Dual-layer server-side encryption with AWS KMS keys (DSSE-KMS)"),
]

KMS_TYPES = ("sse-kms", "dsse-kms")
MAX_TAGS = 50


def _not_ip_address(value: Any, _store: Mapping[str, Any]) -> bool:
    try:
        ipaddress.ip_address(str(value))
    except ValueError:
        return True
    return False


def _uses_kms(store: Mapping[str, Any]) -> bool:
    return store.get("encryption_type") in KMS_TYPES


def _kms_key_options(upstream: Mapping[str, Any]):
    if upstream.get("encryption_type") not in KMS_TYPES:
        return []
    return [Option(key["id"], key["label"]) for key in KMS_KEYS]


TAG_FIELDS = (
    FieldSpec("key", "Tag key", rules=[Required(), Length(maximum=128)]),
    FieldSpec("value", "Tag value", rules=[Length(maximum=256)]),
)

BUCKET_NAME_RULES = [
    Required("Bucket name is required"),
    Length(3, 63, message="Bucket name must be between 3 and 63 characters long"),
    Pattern(
        r"[a-z0-9.-]+",
        "Bucket name can contain only lowercase letters, numbers, dots (.) and hyphens (-)",
    ),
    Pattern(r"[a-z0-9](.*[a-z0-9])?", "Bucket name must begin and end with a letter or number"),
    NotPattern(r"\.\.", "Bucket name must not contain two adjacent periods"),
    Predicate(_not_ip_address, "Bucket name must not be formatted as an IP address"),
    Predicate(lambda value, _store: value not in EXISTING_BUCKETS, "Bucket name already exists"),
]


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    encryption = {"type": values["encryption_type"], "bucket_key": bool(values.get("bucket_key"))}
    if _uses_kms(values):
        encryption["kms_key_id"] = values.get("kms_key_id")
    return {
        "bucket": values["bucket_name"],
        "region": values["region"],
        "object_ownership": values["object_ownership"],
        "block_public_access": bool(values.get("block_public_access")),
        "versioning": bool(values.get("versioning")),
        "encryption": encryption,
        "tags": {
            tag["key"]: tag.get("value", "")
            for tag in values.get("tags") or []
            if tag.get("key")
        },
    }


DEFINITION = WizardDefinition(
    id="create-bucket",
    title="Create bucket",
    resource_type="bucket",
    steps=(
        Step(
            "general",
            "General configuration",
            fields=(
                FieldSpec("bucket_name", "Bucket name", rules=BUCKET_NAME_RULES),
                FieldSpec(
                    "region",
                    "AWS Region",
                    FieldType.SELECT,
                    default="us-east-1",
                    options=region_options,
                    rules=[Required(), InOptions()],
                ),
                FieldSpec(
                    "object_ownership",
                    "Object Ownership",
                    FieldType.SELECT,
                    default="bucket-owner-enforced",
                    options=static_options(OWNERSHIP_CHOICES),
                    rules=[Required()],
                ),
            ),
        ),
        Step(
            "public_access",
            "Block Public Access settings",
            fields=(
                FieldSpec("block_public_access", "Block all public access", FieldType.BOOLEAN, default=True),
                FieldSpec(
                    "acknowledge_public",
                    "Acknowledge public access",
                    FieldType.BOOLEAN,
                    depends_on={"block_public_access"},
                    rules=[
                        When(
                            lambda store: not store.get("block_public_access"),
                            Required("Acknowledge that the bucket and its objects might become public"),
                        )
                    ],
                ),
            ),
        ),
        Step(
            "encryption",
            "Versioning and encryption",
            fields=(
                FieldSpec("versioning", "Bucket Versioning", FieldType.BOOLEAN),
                FieldSpec(
                    "encryption_type",
                    "Encryption type",
                    FieldType.SELECT,
                    default="sse-s3",
                    options=static_options(ENCRYPTION_CHOICES),
                    rules=[Required()],
                ),
                FieldSpec(
                    "kms_key_id",
                    "AWS KMS key",
                    FieldType.SELECT,
                    depends_on={"encryption_type"},
                    options=_kms_key_options,
                    rules=[When(_uses_kms, Required("Choose an AWS KMS key"), InOptions())],
                ),
                FieldSpec("bucket_key", "Bucket Key", FieldType.BOOLEAN, default=True),
            ),
        ),
        Step(
            "tags",
            "Tags",
            optional=True,
            fields=(
                FieldSpec(
                    "tags",
                    "Tags",
                    FieldType.STRUCT_LIST,
                    rules=[
                        Length(maximum=MAX_TAGS, message=f"A bucket can have at most {MAX_TAGS} tags"),
                        Items(*TAG_FIELDS),
                    ],
                ),
            ),
        ),
        Step("review", "Review"),
    ),
    assemble=assemble,
)
