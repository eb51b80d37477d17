"""Tests for spec_aggregator.transform (cleaning, tags, servers)."""

import logging

import pytest

from spec_aggregator.transform import (
    clean_operation,
    prefixed_path,
    select_servers,
    transform_operation,
)

DEFAULTS = ({"url": "https://default.example", "description": "Default"},)
SPEC_SERVERS = [{"url": "https://svc.example", "description": "Service"}]
OVERRIDE = [{"url": "https://override.example", "description": "Override"}]


def _op(**extra: object) -> dict:
    op = {
        "operationId": "listParcels",
        "x-public": True,
        "x-audience": "lastmile",
        "x-category": "Tracking",
        "tags": ["internal"],
        "servers": [{"url": "https://old.example"}],
        "responses": {"200": {"description": "OK"}},
    }
    op.update(extra)
    return op


def _transform(op: dict, **kw: object) -> dict:
    args = {
        "service_name": "parcels",
        "method": "get",
        "path": "/parcels",
        "spec_servers": SPEC_SERVERS,
        "default_servers": DEFAULTS,
        "prefix_schemas": False,
    }
    args.update(kw)
    return transform_operation(op, **args)


class TestCleanOperation:
    def test_strips_vendor_markers_tags_and_servers(self) -> None:
        cleaned = clean_operation(_op(**{"x-servers": OVERRIDE}))
        assert cleaned == {"operationId": "listParcels", "responses": {"200": {"description": "OK"}}}

    def test_input_untouched(self) -> None:
        op = _op()
        clean_operation(op)
        assert op["x-public"] is True
        assert op["tags"] == ["internal"]


class TestSelectServers:
    def test_override_wins(self) -> None:
        assert select_servers({"x-servers": OVERRIDE}, SPEC_SERVERS, DEFAULTS) == OVERRIDE

    def test_spec_servers_next(self) -> None:
        assert select_servers({}, SPEC_SERVERS, DEFAULTS) == SPEC_SERVERS

    @pytest.mark.parametrize("spec_servers", [None, []])
    def test_defaults_when_nothing_declared(self, spec_servers: object) -> None:
        assert select_servers({}, spec_servers, DEFAULTS) == list(DEFAULTS)


class TestTransformOperation:
    def test_category_becomes_only_tag(self) -> None:
        out = _transform(_op())
        assert out["tags"] == ["Tracking"]
        assert not any(k.startswith("x-") for k in out)
        assert out["servers"] == SPEC_SERVERS

    def test_missing_category_gives_empty_tags_and_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        op = _op()
        del op["x-category"]
        with caplog.at_level(logging.WARNING, logger="spec_aggregator.transform"):
            out = _transform(op, file_name="parcels.yaml")
        assert out["tags"] == []
        assert "GET /parcels (parcels, parcels.yaml) is public but has no x-category" in caplog.text

    @pytest.mark.parametrize("category", [["Tracking", "Other"], 42, {"name": "Tracking"}])
    def test_non_string_category_treated_as_missing(
        self, category: object, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="spec_aggregator.transform"):
            out = _transform(_op(**{"x-category": category}), file_name="parcels.yaml")
        assert out["tags"] == []
        assert "has invalid x-category" in caplog.text
        assert "parcels.yaml" in caplog.text

    def test_schema_refs_prefixed_when_enabled(self) -> None:
        op = _op(
            responses={
                "200": {
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/Parcel"}}
                    }
                }
            }
        )
        out = _transform(op, prefix_schemas=True)
        schema = out["responses"]["200"]["content"]["application/json"]["schema"]
        assert schema["$ref"] == "#/components/schemas/parcels_Parcel"

    def test_override_servers_applied(self) -> None:
        out = _transform(_op(**{"x-servers": OVERRIDE}))
        assert out["servers"] == OVERRIDE


def test_prefixed_path() -> None:
    assert prefixed_path("/parcels/{id}", "parcels", True) == "/parcels/parcels/{id}"
    assert prefixed_path("/parcels/{id}", "parcels", False) == "/parcels/{id}"
