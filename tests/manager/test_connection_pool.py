"""Tests for ConnectionIdentity and ConnectionPool."""

from unittest.mock import MagicMock

import pytest

from unrepl_client.manager.connection_pool import (
    ChannelHandle,
    ChannelRole,
    ConnectionIdentity,
    ConnectionPool,
)


class TestConnectionIdentity:
    """Tests for ConnectionIdentity."""

    def test_str_is_host_port(self):
        assert str(ConnectionIdentity("localhost", 5555)) == "localhost:5555"

    def test_parse(self):
        assert ConnectionIdentity.parse("127.0.0.1:7888") == ConnectionIdentity("127.0.0.1", 7888)

    def test_parse_ipv6_uses_last_colon(self):
        assert ConnectionIdentity.parse("::1:7888") == ConnectionIdentity("::1", 7888)

    @pytest.mark.parametrize("address", ["localhost", ":5555", "localhost:abc"])
    def test_parse_invalid_raises(self, address):
        with pytest.raises(ValueError):
            ConnectionIdentity.parse(address)

    def test_hashable_and_equal_by_value(self):
        a = ConnectionIdentity("h", 1)
        b = ConnectionIdentity("h", 1)

        assert a == b
        assert len({a, b}) == 1


class TestConnectionPool:
    """Tests for ConnectionPool."""

    def test_get_missing_role_returns_none(self):
        pool = ConnectionPool()

        assert pool.get(ChannelRole.CLIENT) is None

    def test_set_many_merges(self):
        """set_many() keeps roles it does not mention."""
        client = ChannelHandle(transport=MagicMock())
        aux = ChannelHandle(transport=MagicMock())
        pool = ConnectionPool([(ChannelRole.CLIENT, client)])

        pool.set_many([(ChannelRole.AUXILIARY, aux)])

        assert pool.get(ChannelRole.CLIENT) is client
        assert pool.get(ChannelRole.AUXILIARY) is aux

    def test_set_many_overwrites_same_role(self):
        old = ChannelHandle(transport=MagicMock())
        new = ChannelHandle(transport=MagicMock())
        pool = ConnectionPool([(ChannelRole.CLIENT, old)])

        pool.set_many([(ChannelRole.CLIENT, new)])

        assert pool.get(ChannelRole.CLIENT) is new

    def test_accepts_role_strings(self):
        handle = ChannelHandle(transport=MagicMock())
        pool = ConnectionPool([("side-channel", handle)])

        assert pool.get(ChannelRole.SIDE_CHANNEL) is handle

    def test_live_handles_skips_absent(self):
        handle = ChannelHandle(transport=MagicMock())
        pool = ConnectionPool([(ChannelRole.CLIENT, handle), (ChannelRole.AUXILIARY, None)])

        assert pool.live_handles() == [(ChannelRole.CLIENT, handle)]
        assert len(pool) == 1

    def test_iteration_matches_len(self):
        """Cleared roles are neither counted nor iterated."""
        handle = ChannelHandle(transport=MagicMock())
        pool = ConnectionPool([(ChannelRole.CLIENT, handle), (ChannelRole.AUXILIARY, None)])
        pool.set_many([(ChannelRole.SIDE_CHANNEL, ChannelHandle(transport=MagicMock()))])
        pool.set_many([(ChannelRole.SIDE_CHANNEL, None)])

        assert list(pool) == [ChannelRole.CLIENT]
        assert len(list(pool)) == len(pool)
