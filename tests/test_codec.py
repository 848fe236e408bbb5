import pytest

from zvote_client.codec import (
    addresses_equal, checksum_address, encode_handle, handle_to_bytes, normalize_signature,
    to_hex, validate_address
)
from zvote_client.exceptions import InvalidIdentity, SignatureRejected


class TestAddresses:

    def test_validate_address_lowercases(self):
        assert validate_address("0x" + "AB" * 20) == "0x" + "ab" * 20

    @pytest.mark.parametrize("value", [
        None,
        "",
        "ab" * 20,
        "0x" + "ab" * 19,
        "0x" + "zz" * 20,
        "0x" + "ab" * 21,
        "0x" + "ab" * 20 + "\n",
        " 0x" + "ab" * 20,
    ])
    def test_validate_address_rejects_malformed(self, value):
        with pytest.raises(InvalidIdentity):
            validate_address(value)

    def test_checksum_address(self):
        assert checksum_address("0xb6e160b1ff80d67bfe90a85ee06ce0a2613607d1") == \
            "0xb6E160B1ff80D67Bfe90A85eE06Ce0A2613607D1"

    def test_addresses_equal_ignores_case(self):
        assert addresses_equal("0x" + "AB" * 20, "0x" + "ab" * 20)
        assert not addresses_equal("0x" + "ab" * 20, "0x" + "cd" * 20)
        assert not addresses_equal("not-an-address", "not-an-address")


class TestHandles:

    def test_encode_handle_from_hex_string(self):
        assert encode_handle("0x" + "AA" * 32) == "aa" * 32

    def test_encode_handle_pads_integers(self):
        encoded = encode_handle(255)
        assert len(encoded) == 64
        assert encoded == "0" * 62 + "ff"

    def test_encode_handle_from_bytes(self):
        assert encode_handle(b"\x01" * 32) == "01" * 32

    @pytest.mark.parametrize("value", [True, -1, 2 ** 256, "0x" + "ab" * 33, "xyz", 1.5])
    def test_encode_handle_rejects(self, value):
        with pytest.raises(ValueError):
            encode_handle(value)

    def test_handle_to_bytes(self):
        assert handle_to_bytes("0x" + "ff" * 32) == b"\xff" * 32

    def test_to_hex(self):
        assert to_hex(b"\x0a\x0b") == "0x0a0b"
        assert to_hex("0xABCD") == "0xabcd"
        with pytest.raises(ValueError):
            to_hex("not hex")
        with pytest.raises(ValueError):
            to_hex("0xabcd\n")


class TestSignatures:

    def test_normalize_signature_strips_prefix(self):
        assert normalize_signature("0x" + "AB" * 65) == "ab" * 65

    @pytest.mark.parametrize("value", [None, "", "0x" + "ab" * 64, "0x" + "zz" * 65])
    def test_normalize_signature_rejects(self, value):
        with pytest.raises(SignatureRejected) as exc_info:
            normalize_signature(value)
        assert exc_info.value.step == "sign"
