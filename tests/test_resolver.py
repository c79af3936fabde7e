"""Tests for triton_driver.resolver module."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from triton_driver.exceptions import (
    AmbiguousImageError,
    ConnectivityError,
    ImageNotFoundError,
    PackageNotFoundError,
    RemoteOperationError,
    TimestampParseError,
)
from triton_driver.models import ImageCatalogEntry, PackageInfo
from triton_driver.resolver import parse_timestamp, resolve_image, validate_package


def _image(id, name, version="1.0", published_at="2015-05-27T00:00:00Z"):
    return ImageCatalogEntry(id=id, name=name, version=version, published_at=published_at)


def _not_found(reference):
    raise ImageNotFoundError(reference)


def _catalog(*images):
    return MagicMock(return_value=list(images))


class TestResolveImage:
    def test_exact_id_short_circuits(self):
        get_image = MagicMock(return_value=_image("debian-8", "other"))
        list_images = _catalog(_image("aaa-111", "debian-8"))
        assert resolve_image("debian-8", get_image, list_images) == "debian-8"
        list_images.assert_not_called()

    def test_single_name_match(self):
        list_images = _catalog(_image("aaa-111", "debian-8"), _image("bbb-222", "ubuntu"))
        assert resolve_image("debian-8", _not_found, list_images) == "aaa-111"
        list_images.assert_called_once_with(state="all")

    def test_name_and_version_narrows_listing(self):
        list_images = _catalog(
            _image("old-1", "debian-8", "20150527", "2015-05-27T15:00:00Z"),
            _image("new-2", "debian-8", "20150702", "2015-07-02T15:00:00Z"),
        )
        assert resolve_image("debian-8@20150702", _not_found, list_images) == "new-2"
        list_images.assert_called_once_with(state="all", name="debian-8", version="20150702")

    def test_name_and_version_picks_requested_version(self):
        # the API already filtered by version
        list_images = _catalog(_image("new-2", "debian-8", "20150702", "2015-07-02T15:00:00Z"))
        assert resolve_image("debian-8@20150702", _not_found, list_images) == "new-2"

    def test_most_recent_of_many_name_matches(self):
        list_images = _catalog(
            _image("a-1", "debian-8", "1", "2015-05-27T15:00:00Z"),
            _image("c-3", "debian-8", "3", "2015-07-02T15:53:12.123Z"),
            _image("b-2", "debian-8", "2", "2015-06-01T00:00:00Z"),
        )
        assert resolve_image("debian-8", _not_found, list_images) == "c-3"

    def test_equal_timestamps_keep_first(self):
        list_images = _catalog(
            _image("first-1", "debian-8", "1", "2015-07-02T15:00:00Z"),
            _image("second-2", "debian-8", "2", "2015-07-02T15:00:00Z"),
        )
        assert resolve_image("debian-8", _not_found, list_images) == "first-1"

    def test_bad_timestamp_aborts(self):
        list_images = _catalog(
            _image("a-1", "debian-8", "1", "2015-07-02T15:00:00Z"),
            _image("b-2", "debian-8", "2", "yesterday"),
        )
        with pytest.raises(TimestampParseError) as exc:
            resolve_image("debian-8", _not_found, list_images)
        assert exc.value.reference == "debian-8"
        assert exc.value.value == "yesterday"

    def test_single_unparseable_timestamp_still_resolves(self):
        list_images = _catalog(
            _image("a-1", "debian-8", "1", "yesterday"),
            _image("b-2", "ubuntu", "1", "2015-07-02T15:00:00Z"),
        )
        assert resolve_image("debian-8", _not_found, list_images) == "a-1"

    def test_name_match_beats_short_id(self):
        list_images = _catalog(
            _image("ca29-0000", "something"),
            _image("dddd-1111", "ca29"),
        )
        assert resolve_image("ca29", _not_found, list_images) == "dddd-1111"

    def test_single_short_id_match(self):
        list_images = _catalog(
            _image("ca291f66-aaaa-bbbb", "debian-8"),
            _image("0000ffff-aaaa-bbbb", "ubuntu"),
        )
        assert resolve_image("ca291f66", _not_found, list_images) == "ca291f66-aaaa-bbbb"

    def test_ambiguous_short_id(self):
        list_images = _catalog(
            _image("ca29-aaaa", "debian-8"),
            _image("ca29-bbbb", "ubuntu"),
        )
        with pytest.raises(AmbiguousImageError) as exc:
            resolve_image("ca29", _not_found, list_images)
        assert exc.value.reference == "ca29"
        assert exc.value.candidates == ["ca29-aaaa", "ca29-bbbb"]

    def test_no_match(self):
        list_images = _catalog(_image("aaa-111", "ubuntu"))
        with pytest.raises(ImageNotFoundError) as exc:
            resolve_image("debian-8", _not_found, list_images)
        assert exc.value.reference == "debian-8"

    def test_rejected_id_lookup_falls_through_to_name(self):
        get_image = MagicMock(
            side_effect=RemoteOperationError("CloudAPI error (409): InvalidArgument", status_code=409)
        )
        list_images = _catalog(_image("aaa-111", "debian-8"))
        assert resolve_image("debian-8", get_image, list_images) == "aaa-111"
        list_images.assert_called_once_with(state="all")

    def test_rejected_id_lookup_reported_when_catalog_misses(self):
        get_image = MagicMock(
            side_effect=RemoteOperationError("CloudAPI error (409): InvalidArgument", status_code=409)
        )
        with pytest.raises(RemoteOperationError) as exc:
            resolve_image("debian-8", get_image, _catalog(_image("bbb-222", "ubuntu")))
        assert exc.value.status_code == 409

    def test_transport_error_on_lookup_propagates(self):
        get_image = MagicMock(side_effect=ConnectivityError("unreachable"))
        list_images = _catalog()
        with pytest.raises(ConnectivityError):
            resolve_image("debian-8", get_image, list_images)
        list_images.assert_not_called()

    def test_catalog_not_mutated(self):
        images = [_image("b-2", "debian-8", "2", "2015-06-01T00:00:00Z"), _image("a-1", "debian-8")]
        snapshot = list(images)
        resolve_image("debian-8", _not_found, MagicMock(return_value=images))
        assert images == snapshot

    def test_logs_matching_rule(self):
        list_images = _catalog(_image("aaa-111", "debian-8"))
        with patch("triton_driver.resolver.log") as mock_log:
            resolve_image("debian-8", _not_found, list_images)
        mock_log.assert_called_once_with("INFO", "resolved image 'debian-8' to 'aaa-111' (exact name match)")


class TestParseTimestamp:
    def test_zulu(self):
        parsed = parse_timestamp("2015-07-02T15:53:12Z")
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2015, 7, 2, 15)
        assert parsed.utcoffset().total_seconds() == 0

    def test_offset(self):
        assert parse_timestamp("2015-07-02T17:53:12+02:00") == parse_timestamp("2015-07-02T15:53:12Z")

    @pytest.mark.parametrize("value", ["", "2015-07-02", "not a date"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestValidatePackage:
    def test_existing_package(self):
        package = PackageInfo(id="pkg-1", name="k4-highcpu-kvm-250M")
        get_package = MagicMock(return_value=package)
        assert validate_package("k4-highcpu-kvm-250M", get_package) is package
        get_package.assert_called_once_with("k4-highcpu-kvm-250M")

    def test_missing_package(self):
        get_package = MagicMock(side_effect=PackageNotFoundError("nope"))
        with pytest.raises(PackageNotFoundError) as exc:
            validate_package("nope", get_package)
        assert exc.value.reference == "nope"
