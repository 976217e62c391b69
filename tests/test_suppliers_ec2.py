import zlib

import pytest

from scripts.inventory.alerter import Alert
from scripts.inventory.errors import RequestFailure
from scripts.inventory.suppliers.ec2 import (
    AmiSupplier,
    EbsSnapshotSupplier,
    EipAssociationSupplier,
    EipSupplier,
    InstanceSupplier,
    InternetGatewaySupplier,
    NatGatewaySupplier,
    RouteSupplier,
    RouteTableSupplier,
    route_id,
)
from tests.conftest import FakeFactory, FakeStateReader, client_error, paginated_client

ROUTE_TABLE_PAGES = [
    {"RouteTables": [
        {
            "RouteTableId": "rtb-096bdfb69309c54c3",
            "Routes": [
                {"DestinationCidrBlock": "10.0.0.0/16", "Origin": "CreateRouteTable"},
                {"DestinationCidrBlock": "1.1.1.1/32", "GatewayId": "igw-030e74f73bd67f21b"},
                {"DestinationIpv6CidrBlock": "::/0", "GatewayId": "igw-030e74f73bd67f21b"},
            ],
        },
    ]},
    {"RouteTables": [
        {
            "RouteTableId": "rtb-02780c485f0be93c5",
            "VpcId": "vpc-09fe5abc2309ba49d",
            "Associations": [{"Main": True}],
            "Routes": [
                {"DestinationCidrBlock": "10.0.0.0/16", "Origin": "CreateRouteTable"},
                {"DestinationPrefixListId": "pl-63a5400a", "GatewayId": "vpce-1"},
            ],
        },
        {
            "RouteTableId": "",
            "Routes": [{"DestinationCidrBlock": "10.0.0.0/16", "Origin": "CreateRouteTable"}],
        },
    ]},
]

LISTED_CASES = [
    (
        AmiSupplier, "describe_images", "Images", {"Owners": ["self"]},
        [{"ImageId": "ami-03a578b46f4c3081b"}, {"ImageId": "ami-025962fd8b456731f"}],
    ),
    (
        EbsSnapshotSupplier, "describe_snapshots", "Snapshots", {"OwnerIds": ["self"]},
        [{"SnapshotId": "snap-0c509a2a880d95a39"}, {"SnapshotId": "snap-00672558cecd93a61"}],
    ),
    (
        InternetGatewaySupplier, "describe_internet_gateways", "InternetGateways", {},
        [{"InternetGatewayId": "igw-0184eb41aadc62d1c"}, {"InternetGatewayId": "igw-047b487f5c60fca99"}],
    ),
    (
        NatGatewaySupplier, "describe_nat_gateways", "NatGateways", {},
        [{"NatGatewayId": "nat-0a5408508b19ef490"}, {"NatGatewayId": "nat-0e6556b7f8d7e4b63"}],
    ),
]


def make_supplier(cls, pool, alerter, reader, client):
    return cls(reader, pool, alerter, FakeFactory({"ec2": client}))


@pytest.mark.parametrize("supplier_cls,method,key,kwargs,items", LISTED_CASES)
def test_one_read_per_listed_item(pool, alerter, supplier_cls, method, key, kwargs, items):
    typ = supplier_cls.RESOURCE_TYPE
    seen = []

    def pages(request):
        seen.append(request)
        return [{key: items[:1]}, {key: items[1:]}]

    ids = [next(v for k, v in item.items() if k.endswith("Id")) for item in items]
    reader = FakeStateReader({typ: {rid: {"id": rid} for rid in ids}})

    resources = make_supplier(supplier_cls, pool, alerter, reader, paginated_client(**{method: pages})).resources()

    assert sorted(r.id for r in resources) == sorted(ids)
    assert all(r.type == typ for r in resources)
    assert seen == [kwargs]


@pytest.mark.parametrize("supplier_cls,method,key,kwargs,items", LISTED_CASES)
def test_forbidden_listing_ignores_the_type(pool, alerter, supplier_cls, method, key, kwargs, items):
    typ = supplier_cls.RESOURCE_TYPE
    client = paginated_client(**{method: client_error(403)})

    assert make_supplier(supplier_cls, pool, alerter, FakeStateReader(), client).resources() == []
    assert alerter.retrieve() == {typ: [Alert(
        f"Ignoring {typ} from drift calculation: Listing {typ} is forbidden.",
        should_ignore_resource=True,
    )]}


class TestInstances:
    PAGES = [
        {"Reservations": [{"Instances": [{"InstanceId": "i-0d3650a23f4e45dc0"}]}]},
        {"Reservations": [
            {"Instances": [{"InstanceId": "i-010376047a71419f1"}, {"InstanceId": "i-0a3a7ed51ae2b4fa0"}]},
            {"Instances": []},
        ]},
    ]

    def test_reservations_are_flattened(self, pool, alerter):
        reader = FakeStateReader({"aws_instance": {
            "i-0d3650a23f4e45dc0": {"id": "i-0d3650a23f4e45dc0", "instance_type": "t3.micro", "tags": {"Name": "web"}},
            "i-010376047a71419f1": {"id": "i-010376047a71419f1", "ami": "ami-1"},
            # terminated between listing and read
            "i-0a3a7ed51ae2b4fa0": None,
        }})
        client = paginated_client(describe_instances=self.PAGES)

        instances = make_supplier(InstanceSupplier, pool, alerter, reader, client).resources()

        assert sorted(i.id for i in instances) == ["i-010376047a71419f1", "i-0d3650a23f4e45dc0"]
        assert len(reader.calls) == 3
        web = next(i for i in instances if i.id == "i-0d3650a23f4e45dc0")
        assert web.instance_type == "t3.micro"
        assert web.tags == {"Name": "web"}

    def test_forbidden_read_ignores_the_type(self, pool, alerter):
        reader = FakeStateReader(errors={("aws_instance", "i-0d3650a23f4e45dc0"): RequestFailure(403)})
        client = paginated_client(describe_instances=self.PAGES[:1])

        assert make_supplier(InstanceSupplier, pool, alerter, reader, client).resources() == []
        assert alerter.is_ignored("aws_instance")


class TestElasticIps:
    ADDRESSES = {"Addresses": [
        {"AllocationId": "eipalloc-017d5267e4dda73f1", "AssociationId": "eipassoc-0e9a7356e30f0c3d1"},
        {"AllocationId": "eipalloc-0cf714dc097c992cc"},
    ]}

    def client(self):
        client = paginated_client()
        client.describe_addresses.return_value = self.ADDRESSES
        return client

    def test_one_read_per_allocation(self, pool, alerter):
        reader = FakeStateReader({"aws_eip": {
            "eipalloc-017d5267e4dda73f1": {"id": "eipalloc-017d5267e4dda73f1", "public_ip": "3.1.2.3", "vpc": True},
            "eipalloc-0cf714dc097c992cc": {"id": "eipalloc-0cf714dc097c992cc"},
        }})

        eips = make_supplier(EipSupplier, pool, alerter, reader, self.client()).resources()

        assert sorted(e.id for e in eips) == ["eipalloc-017d5267e4dda73f1", "eipalloc-0cf714dc097c992cc"]
        assert next(e for e in eips if e.public_ip).vpc is True

    def test_only_associated_addresses_are_read(self, pool, alerter):
        reader = FakeStateReader({"aws_eip_association": {
            "eipassoc-0e9a7356e30f0c3d1": {
                "id": "eipassoc-0e9a7356e30f0c3d1", "allocation_id": "eipalloc-017d5267e4dda73f1",
            },
        }})

        [assoc] = make_supplier(EipAssociationSupplier, pool, alerter, reader, self.client()).resources()

        assert assoc.id == "eipassoc-0e9a7356e30f0c3d1"
        assert assoc.allocation_id == "eipalloc-017d5267e4dda73f1"

    def test_forbidden_listing(self, pool, alerter):
        client = paginated_client()
        client.describe_addresses.side_effect = client_error(403)

        assert make_supplier(EipAssociationSupplier, pool, alerter, FakeStateReader(), client).resources() == []
        [alert] = alerter.retrieve()["aws_eip_association"]
        assert alert.message == (
            "Ignoring aws_eip_association from drift calculation: "
            "Listing aws_eip_association is forbidden."
        )


class TestRouteTables:
    def test_tables_without_id_are_skipped(self, pool, alerter):
        reader = FakeStateReader({"aws_route_table": {
            "rtb-096bdfb69309c54c3": {"id": "rtb-096bdfb69309c54c3"},
            "rtb-02780c485f0be93c5": {"id": "rtb-02780c485f0be93c5", "vpc_id": "vpc-09fe5abc2309ba49d"},
        }})
        client = paginated_client(describe_route_tables=ROUTE_TABLE_PAGES)

        tables = make_supplier(RouteTableSupplier, pool, alerter, reader, client).resources()

        assert sorted(t.id for t in tables) == ["rtb-02780c485f0be93c5", "rtb-096bdfb69309c54c3"]
        assert sorted(reader.calls) == [
            ("aws_route_table", "rtb-02780c485f0be93c5", {"vpc_id": "vpc-09fe5abc2309ba49d"}),
            ("aws_route_table", "rtb-096bdfb69309c54c3", {}),
        ]


class TestRoutes:
    def test_route_id(self):
        assert route_id("rtb-1", "0.0.0.0/0") == f"r-rtb-1{zlib.crc32(b'0.0.0.0/0')}"
        assert route_id("rtb-1", "::/0") != route_id("rtb-2", "::/0")

    def test_default_routes_are_skipped(self, pool, alerter):
        table1, default = "rtb-096bdfb69309c54c3", "rtb-02780c485f0be93c5"
        expected = {
            route_id(table1, "1.1.1.1/32"): {
                "route_table_id": table1, "destination_cidr_block": "1.1.1.1/32",
            },
            route_id(table1, "::/0"): {
                "route_table_id": table1, "destination_ipv6_cidr_block": "::/0",
            },
            route_id(default, "pl-63a5400a"): {
                "route_table_id": default, "destination_prefix_list_id": "pl-63a5400a",
            },
        }
        reader = FakeStateReader({"aws_route": {
            rid: {"id": rid, **attrs} for rid, attrs in expected.items()
        }})
        client = paginated_client(describe_route_tables=ROUTE_TABLE_PAGES)

        routes = make_supplier(RouteSupplier, pool, alerter, reader, client).resources()

        assert sorted(r.id for r in routes) == sorted(expected)
        assert sorted((c[1], c[2]) for c in reader.calls) == sorted(expected.items())
        ipv6 = next(r for r in routes if r.destination_ipv6_cidr_block)
        assert ipv6.route_table_id == table1
        assert ipv6.destination_cidr_block is None

    def test_forbidden_listing_names_the_route_table(self, pool, alerter):
        client = paginated_client(describe_route_tables=client_error(403))

        assert make_supplier(RouteSupplier, pool, alerter, FakeStateReader(), client).resources() == []
        assert alerter.retrieve() == {"aws_route": [Alert(
            "Ignoring aws_route from drift calculation. Listing aws_route_table is forbidden.",
            should_ignore_resource=True,
        )]}
