# tests/test_server_spec.py

"""
Server create payload builder 테스트.
"""

import base64

from instance_orchestrator.core.openstack.server_spec import ServerCreateOptions, ServerSpecBuilder
from instance_orchestrator.models.instance import RootVolume


def _base(**overrides) -> ServerCreateOptions:
    fields = {
        "name": "node-0",
        "image_id": "img-1",
        "flavor_id": "flv-1",
        "availability_zone": "az-1",
        "port_ids": ["port-1", "port-2"],
    }
    fields.update(overrides)
    return ServerCreateOptions(**fields)


def test_base_payload_only():
    attrs = ServerSpecBuilder(_base()).build()

    assert attrs["name"] == "node-0"
    assert attrs["image_id"] == "img-1"
    assert attrs["availability_zone"] == "az-1"
    assert attrs["networks"] == [{"port": "port-1"}, {"port": "port-2"}]
    assert "block_device_mapping" not in attrs
    assert "scheduler_hints" not in attrs


def test_empty_image_is_not_sent():
    attrs = ServerSpecBuilder(_base(image_id="")).build()
    assert "image_id" not in attrs


def test_user_data_is_base64_encoded():
    attrs = ServerSpecBuilder(_base(user_data="#cloud-config\n")).build()
    assert base64.b64decode(attrs["user_data"]).decode() == "#cloud-config\n"


def test_root_volume_with_zero_size_is_ignored():
    attrs = ServerSpecBuilder(_base()).with_root_volume(RootVolume(source_uuid="img-1", size=0)).build()
    assert "block_device_mapping" not in attrs


def test_root_volume_extension():
    rv = RootVolume(source_type="image", source_uuid="img-1", size=40, device_type="disk")
    attrs = ServerSpecBuilder(_base(image_id="")).with_root_volume(rv).build()

    assert attrs["block_device_mapping"] == [
        {
            "boot_index": 0,
            "source_type": "image",
            "uuid": "img-1",
            "destination_type": "volume",
            "volume_size": 40,
            "delete_on_termination": True,
            "device_type": "disk",
        }
    ]


def test_root_volume_and_server_group_compose():
    rv = RootVolume(source_type="volume", source_uuid="vol-1", size=10)
    attrs = (
        ServerSpecBuilder(_base())
        .with_server_group("group-1")
        .with_root_volume(rv)
        .build()
    )

    assert attrs["scheduler_hints"] == {"group": "group-1"}
    assert attrs["block_device_mapping"][0]["uuid"] == "vol-1"
    assert "device_type" not in attrs["block_device_mapping"][0]


def test_empty_server_group_adds_no_hint():
    attrs = ServerSpecBuilder(_base()).with_server_group("").build()
    assert "scheduler_hints" not in attrs
