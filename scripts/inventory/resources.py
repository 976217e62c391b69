"""Typed AWS resources produced by the scan.

Each resource type is a frozen dataclass. Attributes are declared with the
``Value`` kind the state reader is expected to return for them; the
deserializer enforces it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, ClassVar, Optional

from scripts.inventory.value import Kind

AWS_IAM_USER = "aws_iam_user"
AWS_IAM_USER_POLICY = "aws_iam_user_policy"
AWS_IAM_USER_POLICY_ATTACHMENT = "aws_iam_user_policy_attachment"
AWS_IAM_POLICY = "aws_iam_policy"
AWS_LAMBDA_FUNCTION = "aws_lambda_function"
AWS_DB_INSTANCE = "aws_db_instance"
AWS_DB_SUBNET_GROUP = "aws_db_subnet_group"
AWS_EBS_VOLUME = "aws_ebs_volume"
AWS_INSTANCE = "aws_instance"
AWS_AMI = "aws_ami"
AWS_EBS_SNAPSHOT = "aws_ebs_snapshot"
AWS_EIP = "aws_eip"
AWS_EIP_ASSOCIATION = "aws_eip_association"
AWS_INTERNET_GATEWAY = "aws_internet_gateway"
AWS_NAT_GATEWAY = "aws_nat_gateway"
AWS_ROUTE_TABLE = "aws_route_table"
AWS_ROUTE = "aws_route"
AWS_ROUTE53_ZONE = "aws_route53_zone"
AWS_ROUTE53_RECORD = "aws_route53_record"
AWS_S3_BUCKET = "aws_s3_bucket"
AWS_S3_BUCKET_POLICY = "aws_s3_bucket_policy"
AWS_S3_BUCKET_NOTIFICATION = "aws_s3_bucket_notification"
AWS_S3_BUCKET_ANALYTICS_CONFIGURATION = "aws_s3_bucket_analytics_configuration"
AWS_S3_BUCKET_INVENTORY = "aws_s3_bucket_inventory"
AWS_S3_BUCKET_METRIC = "aws_s3_bucket_metric"


def attribute(kind: Kind, name: Optional[str] = None) -> Any:
    """Declare an optional attribute holding a value of the given kind.

    ``name`` is the key in the normalized state when it differs from the
    field name (e.g. ``type``, which would shadow ``Resource.type``).
    """
    metadata = {"kind": kind}
    if name:
        metadata["name"] = name
    return field(default=None, metadata=metadata)


@dataclass(frozen=True)
class Resource:
    TYPE: ClassVar[str] = ""

    id: str

    @property
    def type(self) -> str:
        return self.TYPE

    @classmethod
    def attributes(cls) -> dict[str, tuple[str, Kind]]:
        """Map of field name -> (state key, expected kind), ``id`` excluded."""
        return {
            f.name: (f.metadata.get("name", f.name), f.metadata["kind"])
            for f in fields(cls)
            if f.name != "id"
        }

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE, **asdict(self)}


# ----------------------------------------------------------------------
# IAM
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class IamUser(Resource):
    TYPE: ClassVar[str] = AWS_IAM_USER

    name: Optional[str] = attribute(Kind.STRING)
    path: Optional[str] = attribute(Kind.STRING)
    arn: Optional[str] = attribute(Kind.STRING)
    permissions_boundary: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class IamUserPolicy(Resource):
    TYPE: ClassVar[str] = AWS_IAM_USER_POLICY

    name: Optional[str] = attribute(Kind.STRING)
    user: Optional[str] = attribute(Kind.STRING)
    policy: Optional[str] = attribute(Kind.STRING)


@dataclass(frozen=True)
class IamUserPolicyAttachment(Resource):
    TYPE: ClassVar[str] = AWS_IAM_USER_POLICY_ATTACHMENT

    user: Optional[str] = attribute(Kind.STRING)
    policy_arn: Optional[str] = attribute(Kind.STRING)


@dataclass(frozen=True)
class IamPolicy(Resource):
    TYPE: ClassVar[str] = AWS_IAM_POLICY

    name: Optional[str] = attribute(Kind.STRING)
    path: Optional[str] = attribute(Kind.STRING)
    arn: Optional[str] = attribute(Kind.STRING)
    description: Optional[str] = attribute(Kind.STRING)
    policy: Optional[str] = attribute(Kind.STRING)


# ----------------------------------------------------------------------
# Compute / database
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class LambdaFunction(Resource):
    TYPE: ClassVar[str] = AWS_LAMBDA_FUNCTION

    function_name: Optional[str] = attribute(Kind.STRING)
    arn: Optional[str] = attribute(Kind.STRING)
    runtime: Optional[str] = attribute(Kind.STRING)
    handler: Optional[str] = attribute(Kind.STRING)
    role: Optional[str] = attribute(Kind.STRING)
    memory_size: Optional[float] = attribute(Kind.NUMBER)
    timeout: Optional[float] = attribute(Kind.NUMBER)
    environment: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class DbInstance(Resource):
    TYPE: ClassVar[str] = AWS_DB_INSTANCE

    identifier: Optional[str] = attribute(Kind.STRING)
    engine: Optional[str] = attribute(Kind.STRING)
    engine_version: Optional[str] = attribute(Kind.STRING)
    instance_class: Optional[str] = attribute(Kind.STRING)
    allocated_storage: Optional[float] = attribute(Kind.NUMBER)
    publicly_accessible: Optional[bool] = attribute(Kind.BOOL)
    storage_encrypted: Optional[bool] = attribute(Kind.BOOL)
    db_subnet_group_name: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class DbSubnetGroup(Resource):
    TYPE: ClassVar[str] = AWS_DB_SUBNET_GROUP

    name: Optional[str] = attribute(Kind.STRING)
    arn: Optional[str] = attribute(Kind.STRING)
    description: Optional[str] = attribute(Kind.STRING)
    subnet_ids: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class EbsVolume(Resource):
    TYPE: ClassVar[str] = AWS_EBS_VOLUME

    availability_zone: Optional[str] = attribute(Kind.STRING)
    size: Optional[float] = attribute(Kind.NUMBER)
    volume_type: Optional[str] = attribute(Kind.STRING, name="type")
    encrypted: Optional[bool] = attribute(Kind.BOOL)
    iops: Optional[float] = attribute(Kind.NUMBER)
    kms_key_id: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


# ----------------------------------------------------------------------
# EC2 and VPC networking
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Instance(Resource):
    TYPE: ClassVar[str] = AWS_INSTANCE

    ami: Optional[str] = attribute(Kind.STRING)
    instance_type: Optional[str] = attribute(Kind.STRING)
    availability_zone: Optional[str] = attribute(Kind.STRING)
    subnet_id: Optional[str] = attribute(Kind.STRING)
    private_ip: Optional[str] = attribute(Kind.STRING)
    public_ip: Optional[str] = attribute(Kind.STRING)
    key_name: Optional[str] = attribute(Kind.STRING)
    vpc_security_group_ids: Optional[list] = attribute(Kind.LIST)
    root_block_device: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class Ami(Resource):
    TYPE: ClassVar[str] = AWS_AMI

    name: Optional[str] = attribute(Kind.STRING)
    description: Optional[str] = attribute(Kind.STRING)
    architecture: Optional[str] = attribute(Kind.STRING)
    root_device_name: Optional[str] = attribute(Kind.STRING)
    virtualization_type: Optional[str] = attribute(Kind.STRING)
    ebs_block_device: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class EbsSnapshot(Resource):
    TYPE: ClassVar[str] = AWS_EBS_SNAPSHOT

    volume_id: Optional[str] = attribute(Kind.STRING)
    volume_size: Optional[float] = attribute(Kind.NUMBER)
    description: Optional[str] = attribute(Kind.STRING)
    encrypted: Optional[bool] = attribute(Kind.BOOL)
    kms_key_id: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class Eip(Resource):
    TYPE: ClassVar[str] = AWS_EIP

    public_ip: Optional[str] = attribute(Kind.STRING)
    private_ip: Optional[str] = attribute(Kind.STRING)
    domain: Optional[str] = attribute(Kind.STRING)
    instance: Optional[str] = attribute(Kind.STRING)
    network_interface: Optional[str] = attribute(Kind.STRING)
    vpc: Optional[bool] = attribute(Kind.BOOL)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class EipAssociation(Resource):
    TYPE: ClassVar[str] = AWS_EIP_ASSOCIATION

    allocation_id: Optional[str] = attribute(Kind.STRING)
    instance_id: Optional[str] = attribute(Kind.STRING)
    network_interface_id: Optional[str] = attribute(Kind.STRING)
    private_ip_address: Optional[str] = attribute(Kind.STRING)
    public_ip: Optional[str] = attribute(Kind.STRING)


@dataclass(frozen=True)
class InternetGateway(Resource):
    TYPE: ClassVar[str] = AWS_INTERNET_GATEWAY

    vpc_id: Optional[str] = attribute(Kind.STRING)
    owner_id: Optional[str] = attribute(Kind.STRING)
    arn: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class NatGateway(Resource):
    TYPE: ClassVar[str] = AWS_NAT_GATEWAY

    allocation_id: Optional[str] = attribute(Kind.STRING)
    subnet_id: Optional[str] = attribute(Kind.STRING)
    network_interface_id: Optional[str] = attribute(Kind.STRING)
    private_ip: Optional[str] = attribute(Kind.STRING)
    public_ip: Optional[str] = attribute(Kind.STRING)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class RouteTable(Resource):
    TYPE: ClassVar[str] = AWS_ROUTE_TABLE

    vpc_id: Optional[str] = attribute(Kind.STRING)
    owner_id: Optional[str] = attribute(Kind.STRING)
    route: Optional[list] = attribute(Kind.LIST)
    propagating_vgws: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class Route(Resource):
    TYPE: ClassVar[str] = AWS_ROUTE

    route_table_id: Optional[str] = attribute(Kind.STRING)
    destination_cidr_block: Optional[str] = attribute(Kind.STRING)
    destination_ipv6_cidr_block: Optional[str] = attribute(Kind.STRING)
    destination_prefix_list_id: Optional[str] = attribute(Kind.STRING)
    gateway_id: Optional[str] = attribute(Kind.STRING)
    nat_gateway_id: Optional[str] = attribute(Kind.STRING)
    instance_id: Optional[str] = attribute(Kind.STRING)
    origin: Optional[str] = attribute(Kind.STRING)
    state: Optional[str] = attribute(Kind.STRING)


# ----------------------------------------------------------------------
# Route53
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Route53Zone(Resource):
    TYPE: ClassVar[str] = AWS_ROUTE53_ZONE

    name: Optional[str] = attribute(Kind.STRING)
    comment: Optional[str] = attribute(Kind.STRING)
    force_destroy: Optional[bool] = attribute(Kind.BOOL)
    vpc: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class Route53Record(Resource):
    TYPE: ClassVar[str] = AWS_ROUTE53_RECORD

    zone_id: Optional[str] = attribute(Kind.STRING)
    name: Optional[str] = attribute(Kind.STRING)
    fqdn: Optional[str] = attribute(Kind.STRING)
    record_type: Optional[str] = attribute(Kind.STRING, name="type")
    ttl: Optional[float] = attribute(Kind.NUMBER)
    records: Optional[list] = attribute(Kind.LIST)
    set_identifier: Optional[str] = attribute(Kind.STRING)
    alias: Optional[list] = attribute(Kind.LIST)


# ----------------------------------------------------------------------
# S3
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class S3Bucket(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET

    bucket: Optional[str] = attribute(Kind.STRING)
    region: Optional[str] = attribute(Kind.STRING)
    acl: Optional[str] = attribute(Kind.STRING)
    versioning: Optional[list] = attribute(Kind.LIST)
    tags: Optional[dict] = attribute(Kind.MAP)


@dataclass(frozen=True)
class S3BucketPolicy(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET_POLICY

    bucket: Optional[str] = attribute(Kind.STRING)
    policy: Optional[str] = attribute(Kind.STRING)


@dataclass(frozen=True)
class S3BucketNotification(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET_NOTIFICATION

    bucket: Optional[str] = attribute(Kind.STRING)
    lambda_function: Optional[list] = attribute(Kind.LIST)
    queue: Optional[list] = attribute(Kind.LIST)
    topic: Optional[list] = attribute(Kind.LIST)

    def is_empty(self) -> bool:
        """True when no notification target is configured."""
        return not (self.lambda_function or self.queue or self.topic)


@dataclass(frozen=True)
class S3BucketAnalyticsConfiguration(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET_ANALYTICS_CONFIGURATION

    bucket: Optional[str] = attribute(Kind.STRING)
    name: Optional[str] = attribute(Kind.STRING)
    filter: Optional[list] = attribute(Kind.LIST)
    storage_class_analysis: Optional[list] = attribute(Kind.LIST)


@dataclass(frozen=True)
class S3BucketInventory(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET_INVENTORY

    bucket: Optional[str] = attribute(Kind.STRING)
    name: Optional[str] = attribute(Kind.STRING)
    enabled: Optional[bool] = attribute(Kind.BOOL)
    included_object_versions: Optional[str] = attribute(Kind.STRING)
    optional_fields: Optional[list] = attribute(Kind.LIST)
    destination: Optional[list] = attribute(Kind.LIST)
    schedule: Optional[list] = attribute(Kind.LIST)
    filter: Optional[list] = attribute(Kind.LIST)


@dataclass(frozen=True)
class S3BucketMetric(Resource):
    TYPE: ClassVar[str] = AWS_S3_BUCKET_METRIC

    bucket: Optional[str] = attribute(Kind.STRING)
    name: Optional[str] = attribute(Kind.STRING)
    filter: Optional[list] = attribute(Kind.LIST)


RESOURCE_TYPES: dict[str, type[Resource]] = {
    cls.TYPE: cls
    for cls in (
        IamUser,
        IamUserPolicy,
        IamUserPolicyAttachment,
        IamPolicy,
        LambdaFunction,
        DbInstance,
        DbSubnetGroup,
        EbsVolume,
        Instance,
        Ami,
        EbsSnapshot,
        Eip,
        EipAssociation,
        InternetGateway,
        NatGateway,
        RouteTable,
        Route,
        Route53Zone,
        Route53Record,
        S3Bucket,
        S3BucketPolicy,
        S3BucketNotification,
        S3BucketAnalyticsConfiguration,
        S3BucketInventory,
        S3BucketMetric,
    )
}
