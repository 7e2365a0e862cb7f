"""Tests for instance provisioning against the in-memory provider."""

from __future__ import annotations

import pytest

from skiaas.errors import (
    ImageNotFoundError,
    InvalidRequestError,
    ResourceGroupNotFoundError,
    UnsupportedOperatingSystemError,
)
from skiaas.models import (
    Hardware,
    Instance,
    InstanceCredentials,
    InstanceScript,
    Options,
    Tag,
)
from skiaas.provisioner import InstanceProvisioner


@pytest.fixture
def provisioner(fake_client, tag_manager, settings):
    return InstanceProvisioner(fake_client, tag_manager, settings)


def _request(**kwargs) -> Instance:
    data = {"tag": "web", "image": "ubuntu-image"}
    data.update(kwargs)
    return Instance(**data)


# ---------------------------------------------------------------------------
# Replicas
# ---------------------------------------------------------------------------


class TestReplicas:
    """One request, N virtual machines."""

    @pytest.mark.parametrize("number", [1, 2, 4])
    def test_returns_one_instance_per_replica(self, provisioner, infrastructure, number):
        created = provisioner.create_instance(infrastructure, _request(number=number))
        assert len(created) == number
        assert len({instance.id for instance in created}) == number
        assert all(instance.number == 1 for instance in created)

    def test_replica_tags(self, provisioner, infrastructure):
        created = provisioner.create_instance(infrastructure, _request(number=3))
        assert [instance.tag for instance in created] == ["web", "web2", "web3"]

    def test_single_batch_call(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request(number=3))
        batches = fake_client.calls_named("create_virtual_machines")
        assert len(batches) == 1
        assert len(batches[0][0]) == 3

    def test_replicas_share_network_and_security_group(
        self, provisioner, infrastructure, fake_client,
    ):
        provisioner.create_instance(infrastructure, _request(number=3))
        assert len(fake_client.networks) == 1
        assert len(fake_client.security_groups) == 1
        assert len(fake_client.interfaces) == 3
        assert len(fake_client.public_ips) == 3

    def test_result_keeps_request_fields(self, provisioner, infrastructure, fake_client):
        created = provisioner.create_instance(
            infrastructure, _request(hardware=Hardware(type="Standard_B2s")),
        )
        vm = next(iter(fake_client.vms.values()))
        assert created[0].id == vm.vm_id
        assert created[0].image == "ubuntu-image"
        assert created[0].hardware.type == "Standard_B2s"

    def test_existing_public_ip_only_on_first_replica(
        self, provisioner, infrastructure, fake_client,
    ):
        existing = fake_client.add_public_ip("52.0.0.1")
        provisioner.create_instance(
            infrastructure, _request(number=2, options=Options(public_ip_address="52.0.0.1")),
        )
        first, second = fake_client.created_specs
        assert first.network_interface.existing_public_ip.id == existing.id
        assert second.network_interface.existing_public_ip is None
        assert fake_client.public_ips[existing.id].attached


# ---------------------------------------------------------------------------
# Validation and resolution
# ---------------------------------------------------------------------------


class TestValidation:
    """Failures before any remote write."""

    def test_missing_tag_makes_no_calls(self, provisioner, infrastructure, fake_client):
        with pytest.raises(InvalidRequestError):
            provisioner.create_instance(infrastructure, Instance(image="ubuntu-image"))
        assert fake_client.calls == []

    def test_missing_image_makes_no_calls(self, provisioner, infrastructure, fake_client):
        with pytest.raises(InvalidRequestError, match="web"):
            provisioner.create_instance(infrastructure, Instance(tag="web"))
        assert fake_client.calls == []

    def test_unknown_image(self, provisioner, infrastructure, fake_client):
        with pytest.raises(ImageNotFoundError, match="nope"):
            provisioner.create_instance(infrastructure, _request(image="nope"))
        assert fake_client.calls_named("create_virtual_machines") == []

    def test_unknown_resource_group(self, provisioner, infrastructure, fake_client):
        with pytest.raises(ResourceGroupNotFoundError, match="rg-missing"):
            provisioner.create_instance(
                infrastructure, _request(options=Options(resource_group="rg-missing")),
            )
        assert fake_client.calls_named("create_virtual_machines") == []

    def test_unknown_region(self, provisioner, infrastructure, fake_client):
        with pytest.raises(InvalidRequestError, match="Atlantis"):
            provisioner.create_instance(infrastructure, _request(options=Options(region="Atlantis")))
        assert fake_client.calls_named("create_virtual_machines") == []

    def test_unsupported_os(self, provisioner, infrastructure, fake_client):
        fake_client.add_image("bsd-image", os_type="FreeBSD")
        with pytest.raises(UnsupportedOperatingSystemError, match="FreeBSD"):
            provisioner.create_instance(infrastructure, _request(image="bsd-image"))
        assert fake_client.calls_named("create_virtual_machines") == []


class TestResolution:
    """Image, region and resource group resolution."""

    def test_image_name_wins_over_id(self, provisioner, infrastructure, fake_client):
        target = fake_client.images[next(iter(fake_client.images))]
        decoy = fake_client.add_image(target.id, os_type="Windows")
        provisioner.create_instance(infrastructure, _request(image=target.id))
        assert fake_client.created_specs[0].image_id == decoy.id

    def test_image_by_id(self, provisioner, infrastructure, fake_client):
        image = next(i for i in fake_client.images.values() if i.name == "ubuntu-image")
        provisioner.create_instance(infrastructure, _request(image=image.id))
        assert fake_client.created_specs[0].image_id == image.id

    def test_region_defaults_to_image(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request())
        assert fake_client.created_specs[0].region == "westeurope"
        assert fake_client.calls_named("resolve_region") == []

    def test_region_label_resolved(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request(options=Options(region="East US")))
        assert fake_client.created_specs[0].region == "eastus"

    def test_resource_group_from_options(self, provisioner, infrastructure, fake_client):
        fake_client.add_resource_group("rg-other")
        provisioner.create_instance(
            infrastructure, _request(options=Options(resource_group="rg-other")),
        )
        assert fake_client.created_specs[0].resource_group == "rg-other"


# ---------------------------------------------------------------------------
# Virtual machine descriptors
# ---------------------------------------------------------------------------


class TestVirtualMachineSpec:
    """What each replica descriptor carries."""

    def test_mandatory_tags_on_every_vm(self, provisioner, infrastructure, fake_client):
        options = Options(tags=[
            Tag(key="connector-iaas", value="spoofed"),
            Tag(key="team", value="web"),
        ])
        provisioner.create_instance(infrastructure, _request(number=2, options=options))
        for vm in fake_client.vms.values():
            assert vm.tags == {
                "connector-iaas": "default-tag",
                "infrastructure-id": "infra-1",
                "team": "web",
            }

    def test_linux_with_key_has_no_password(self, provisioner, infrastructure, fake_client):
        credentials = InstanceCredentials(username="ops", public_key="ssh-rsa AAAA")
        provisioner.create_instance(infrastructure, _request(credentials=credentials))
        spec = fake_client.created_specs[0]
        assert spec.os_type == "linux"
        assert spec.admin_username == "ops"
        assert spec.ssh_public_key == "ssh-rsa AAAA"
        assert spec.admin_password is None

    def test_linux_defaults_to_password(self, provisioner, infrastructure, fake_client, settings):
        provisioner.create_instance(infrastructure, _request())
        spec = fake_client.created_specs[0]
        assert spec.admin_username == settings.default_username
        assert spec.admin_password == settings.default_password
        assert spec.ssh_public_key is None

    def test_windows_uses_password(self, provisioner, infrastructure, fake_client):
        credentials = InstanceCredentials(password="W1ndows!pw", public_key="ssh-rsa AAAA")
        provisioner.create_instance(
            infrastructure, _request(image="windows-image", credentials=credentials),
        )
        spec = fake_client.created_specs[0]
        assert spec.os_type == "windows"
        assert spec.admin_password == "W1ndows!pw"
        assert spec.ssh_public_key is None

    def test_default_size(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request())
        assert fake_client.created_specs[0].size == "Standard_D1_v2"

    def test_init_script_becomes_extension(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(
            infrastructure,
            _request(init_script=InstanceScript(scripts=["apt-get update", "reboot"])),
        )
        extension = fake_client.created_specs[0].extensions[0]
        assert extension.publisher == "Microsoft.Azure.Extensions"
        assert extension.type == "CustomScript"
        assert extension.version == "2.0"
        assert extension.settings == {"commandToExecute": "apt-get update;reboot;"}

    def test_no_script_no_extension(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request())
        assert fake_client.created_specs[0].extensions == []

    def test_os_disk_named_after_replica(self, provisioner, infrastructure, fake_client):
        provisioner.create_instance(infrastructure, _request(number=2))
        names = [spec.os_disk_name for spec in fake_client.created_specs]
        assert names[0].startswith("web-os")
        assert names[1].startswith("web2-os")
