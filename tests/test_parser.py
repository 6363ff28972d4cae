"""Tests for the announcement parser."""

import pytest

from discovery.models import Announcement, Rejected
from discovery.parser import parse_announcement


class TestAcceptedAnnouncements:
    def test_player_announcement(self):
        result = parse_announcement(b"MediaBox:ABC123:LivingRoom:192.168.1.50:PLAYER,AUDIO")
        assert isinstance(result, Announcement)
        assert result.id == "ABC123"
        assert result.name == "LivingRoom"
        assert result.address == "192.168.1.50"
        assert result.features == frozenset({"PLAYER", "AUDIO"})

    def test_trims_whitespace_and_nul_padding(self):
        data = b"  MediaBox:ID:Box:10.0.0.2:DLMASTER,PLAYER,SHAREDLIB\r\n" + b"\x00" * 400
        result = parse_announcement(data)
        assert isinstance(result, Announcement)
        assert result.features == frozenset({"DLMASTER", "PLAYER", "SHAREDLIB"})

    def test_address_is_not_validated(self):
        result = parse_announcement(b"MediaBox:X:Y:not-an-ip:PLAYER")
        assert isinstance(result, Announcement)
        assert result.address == "not-an-ip"

    def test_extra_fields_are_ignored(self):
        result = parse_announcement(b"MediaBox:X:Y:10.0.0.1:PLAYER:extra:stuff")
        assert isinstance(result, Announcement)
        assert result.features == frozenset({"PLAYER"})

    def test_empty_name_is_accepted(self):
        result = parse_announcement(b"MediaBox:X::10.0.0.1:PLAYER")
        assert isinstance(result, Announcement)
        assert result.name == ""


class TestRejectedAnnouncements:
    def test_non_player_rejected(self):
        result = parse_announcement(b"MediaBox:XYZ:Speaker:192.168.1.60:AUDIO")
        assert isinstance(result, Rejected)
        assert result.reason == "not a player"

    @pytest.mark.parametrize(
        "data",
        [
            b"Mediabox:ID:Box:10.0.0.1:PLAYER",
            b"Hello:ID:Box:10.0.0.1:PLAYER",
            b"",
            b"\x00\x00\x00",
        ],
    )
    def test_wrong_prefix_rejected(self, data):
        result = parse_announcement(data)
        assert isinstance(result, Rejected)
        assert result.reason == "missing prefix"

    def test_too_few_fields_rejected(self):
        # The legacy four-field layout without an address.
        result = parse_announcement(b"MediaBox:mediabox:10.10.0.10:DLMASTER,PLAYER")
        assert isinstance(result, Rejected)
        assert "fields" in result.reason

    def test_feature_must_match_whole_token(self):
        result = parse_announcement(b"MediaBox:ID:Box:10.0.0.1:MEDIAPLAYER2")
        assert isinstance(result, Rejected)

    def test_undecodable_bytes_do_not_raise(self):
        result = parse_announcement(b"\xff\xfe\xfdMediaBox:")
        assert isinstance(result, Rejected)
