import pytest

from bizops.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    ResourceType,
    get_all_permission_keys,
    get_permission_definition,
    get_permissions_by_resource,
    override_permission_key,
    parse_permission_key,
    validate_permission_key,
)


def test_parse_permission_key():
    key = parse_permission_key("hardDelete.businesses.enable")
    assert key.action == "hardDelete"
    assert key.resource == "businesses"
    assert key.qualifier == "enable"


def test_parse_keeps_dotted_qualifier():
    assert parse_permission_key("modify.users.photo.enable").qualifier == "photo.enable"


@pytest.mark.parametrize("bad", ["", "view", "view.users", ".users.enable", "view.users.", None])
def test_parse_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_permission_key(bad)


def test_override_key():
    assert override_permission_key(ResourceType.SERVICE_LOCATIONS) == "hardDelete.service_locations.enable"
    assert validate_permission_key(override_permission_key(ResourceType.USERS))


def test_catalog_keys_unique_and_well_formed():
    keys = get_all_permission_keys()
    assert len(keys) == len(set(keys))
    for key, _, action_type, _ in PERMISSION_DEFINITIONS:
        assert parse_permission_key(key).action == action_type


def test_default_grants_reference_catalog():
    for role_name, keys in DEFAULT_ROLE_PERMISSIONS.items():
        unknown = [k for k in keys if not validate_permission_key(k)]
        assert unknown == [], role_name


def test_lookup_helpers():
    definition = get_permission_definition("view.users.enable")
    assert definition["resource_type"] == "users"
    assert get_permission_definition("fly.users.enable") is None

    location_keys = {p[0] for p in get_permissions_by_resource("service_locations")}
    assert "hardDelete.service_locations.enable" in location_keys
    assert "view.users.enable" not in location_keys
