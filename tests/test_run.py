import argparse

import pytest

from run import parse_addr


def test_parse_addr():
    assert parse_addr("router.bittorrent.com:6881") == ("router.bittorrent.com", 6881)
    assert parse_addr("127.0.0.1:31816") == ("127.0.0.1", 31816)


@pytest.mark.parametrize("value", ["127.0.0.1", ":6881", "host:port", "host:"])
def test_parse_addr_rejects_malformed(value):
    with pytest.raises(argparse.ArgumentTypeError):
        parse_addr(value)
